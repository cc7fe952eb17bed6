"""DeviceHandle against real descriptors: regular files and FIFOs stand in for
a joydev node (same read semantics, no joystick ioctls)."""
import errno
import os
import sys

import pytest

from core.errors import DeviceOpenError, OpenFailure, QueryError, ReadError, ReadFailure
from core.state import EventKind, InputEvent
from devices.jsapi import encode_event
from devices.joystick import DeviceHandle

pytestmark = pytest.mark.skipif(not sys.platform.startswith("linux"), reason="needs /proc and fcntl on Linux")


def _open_fds():
    return set(os.listdir("/proc/self/fd"))


def _fd_target(fd):
    try:
        return os.readlink(f"/proc/self/fd/{fd}")
    except FileNotFoundError:
        return None


@pytest.fixture
def record_file(tmp_path):
    path = tmp_path / "js0"
    events = [
        InputEvent(1000, 0x81, 0, 0),
        InputEvent(1000, 0x82, 1, -32767),
        InputEvent(1250, 0x01, 3, 1),
    ]
    path.write_bytes(b"".join(encode_event(e) for e in events))
    return path, events


def test_open_close_leaves_no_descriptor(record_file):
    path, _ = record_file
    js = DeviceHandle.open(path, max_devices=None)
    fd = js.fileno()
    assert _fd_target(fd) == os.path.realpath(path)
    js.close()
    js.close()
    assert _fd_target(fd) is None


def test_reads_records_then_end_of_stream(record_file):
    path, events = record_file
    with DeviceHandle.open(path, max_devices=None) as js:
        decoded = list(js.events())
        assert js.next_event() is None
    assert decoded == events
    assert decoded[2].type is EventKind.BUTTON


def test_partial_trailing_record_is_short_read(tmp_path):
    path = tmp_path / "js0"
    path.write_bytes(encode_event(InputEvent(1, 0x01, 0, 1)) + b"\x01\x02\x03")
    with DeviceHandle.open(path, max_devices=None) as js:
        assert js.next_event().value == 1
        with pytest.raises(ReadError) as info:
            js.next_event()
    assert info.value.reason is ReadFailure.SHORT_READ


def test_joystick_ioctls_on_non_joystick_fail(record_file):
    path, _ = record_file
    with DeviceHandle.open(path, max_devices=None) as js:
        with pytest.raises(QueryError) as info:
            js.axes()
    assert info.value.errno == errno.ENOTTY
    assert info.value.operation == "axes"


def test_missing_node_is_not_found(tmp_path):
    with pytest.raises(DeviceOpenError) as info:
        DeviceHandle.open(tmp_path / "js9", max_devices=None)
    assert info.value.reason is OpenFailure.NOT_FOUND
    assert info.value.errno == errno.ENOENT


def test_slot_limit_rejects_high_descriptor_without_leaking(record_file):
    path, _ = record_file
    before = _open_fds()
    with pytest.raises(DeviceOpenError) as info:
        DeviceHandle.open(path, max_devices=1)
    assert info.value.reason is OpenFailure.TOO_MANY_DEVICES
    assert _open_fds() == before


def test_nonblocking_fifo_returns_none_until_data_arrives(tmp_path):
    path = tmp_path / "js0"
    os.mkfifo(path)
    with DeviceHandle.open(path, nonblocking=True, max_devices=None) as js:
        writer = os.open(path, os.O_WRONLY | os.O_NONBLOCK)
        try:
            assert js.next_event() is None
            os.write(writer, encode_event(InputEvent(77, 0x02, 2, 1234)))
            ev = js.next_event()
            assert ev == InputEvent(77, 0x02, 2, 1234)
            assert js.next_event() is None
        finally:
            os.close(writer)
