"""Linux joydev protocol constants and record codec

Request numbers follow the asm-generic `_IOC` encoding used by
<linux/joystick.h>; see Documentation/input/joydev/joystick-api.rst.
"""
import struct

from core.state import InputEvent

_IOC_NRBITS = 8
_IOC_TYPEBITS = 8
_IOC_SIZEBITS = 14

_IOC_NRSHIFT = 0
_IOC_TYPESHIFT = _IOC_NRSHIFT + _IOC_NRBITS
_IOC_SIZESHIFT = _IOC_TYPESHIFT + _IOC_TYPEBITS
_IOC_DIRSHIFT = _IOC_SIZESHIFT + _IOC_SIZEBITS

_IOC_READ = 2

JS_IOCTL_TYPE = ord("j")

NAME_LENGTH = 128
ABS_CNT = 0x40  # ABS_MAX + 1
BTNMAP_LEN = 0x2FF - 0x100 + 1  # KEY_MAX - BTN_MISC + 1
DEFAULT_NAME = "Unknown"


def _ioc(direction, type_, nr, size):
    return (
        (direction << _IOC_DIRSHIFT)
        | (type_ << _IOC_TYPESHIFT)
        | (nr << _IOC_NRSHIFT)
        | (size << _IOC_SIZESHIFT)
    )


def _ior(nr, size):
    return _ioc(_IOC_READ, JS_IOCTL_TYPE, nr, size)


JSIOCGVERSION = _ior(0x01, 4)  # 0x80046a01
JSIOCGAXES = _ior(0x11, 1)  # 0x80016a11
JSIOCGBUTTONS = _ior(0x12, 1)  # 0x80016a12
JSIOCGAXMAP = _ior(0x32, ABS_CNT)  # 0x80406a32
JSIOCGBTNMAP = _ior(0x34, BTNMAP_LEN * 2)  # 0x84006a34


def JSIOCGNAME(length):
    return _ioc(_IOC_READ, JS_IOCTL_TYPE, 0x13, length)


# struct js_event { __u32 time; __s16 value; __u8 type; __u8 number; }
EVENT_STRUCT = struct.Struct("=IhBB")
EVENT_SIZE = EVENT_STRUCT.size


def decode_event(record: bytes) -> InputEvent:
    if len(record) != EVENT_SIZE:
        raise ValueError(f"js_event record must be {EVENT_SIZE} bytes, got {len(record)}")
    time_ms, value, type_tag, number = EVENT_STRUCT.unpack(record)
    return InputEvent(timestamp=time_ms, type_tag=type_tag, number=number, value=value)


def encode_event(event: InputEvent) -> bytes:
    """Pack an event back into kernel layout (used by replay tooling and tests)."""
    return EVENT_STRUCT.pack(event.timestamp, event.value, event.type_tag, event.number)
