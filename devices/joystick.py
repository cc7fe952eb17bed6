"""Linux joystick device handle (/dev/input/jsN)

`DeviceHandle` owns one read-only descriptor on a joydev node. Capability
queries are ioctls on that descriptor; `next_event()` reads one 8-byte
js_event record and decodes it into an `InputEvent`.

Use it as a context manager so the descriptor is always released:

    with DeviceHandle.open("/dev/input/js0") as js:
        print(js.name(), js.axes(), js.buttons())
        for event in js.events():
            ...

All I/O goes through a `DeviceIO` backend so a simulated device can stand in
for the kernel in tests.
"""
import array
import errno
import fcntl
import logging
import os
from typing import Iterator, Optional, Protocol, Tuple

from core.config import DEFAULT_MAX_DEVICES
from core.errors import (
    DeviceOpenError,
    HandleClosedError,
    OpenFailure,
    QueryError,
    ReadError,
    ReadFailure,
)
from core.state import DeviceInfo, DriverVersion, InputEvent
from devices.jsapi import (
    ABS_CNT,
    BTNMAP_LEN,
    DEFAULT_NAME,
    EVENT_SIZE,
    JSIOCGAXES,
    JSIOCGAXMAP,
    JSIOCGBTNMAP,
    JSIOCGBUTTONS,
    JSIOCGNAME,
    JSIOCGVERSION,
    NAME_LENGTH,
    decode_event,
)

LOG = logging.getLogger("jsbridge.device")

# A read interrupted by a signal is retried this many times before surfacing.
EINTR_RETRIES = 1

_NOT_FOUND_ERRNOS = {errno.ENOENT, errno.ENXIO, errno.ENODEV}
_PERMISSION_ERRNOS = {errno.EACCES, errno.EPERM}
_DISCONNECT_ERRNOS = {errno.ENODEV, errno.EIO, errno.ENXIO}


class DeviceIO(Protocol):
    """System calls used by `DeviceHandle`."""

    def open(self, path: str, flags: int) -> int:
        ...

    def ioctl(self, fd: int, request: int, buf) -> int:
        ...

    def read(self, fd: int, size: int) -> bytes:
        ...

    def close(self, fd: int) -> None:
        ...


class OsDeviceIO:
    """The real thing: os + fcntl."""

    def open(self, path, flags):
        return os.open(path, flags)

    def ioctl(self, fd, request, buf):
        return fcntl.ioctl(fd, request, buf, True)

    def read(self, fd, size):
        return os.read(fd, size)

    def close(self, fd):
        os.close(fd)


def _open_reason(err) -> OpenFailure:
    if err in _NOT_FOUND_ERRNOS:
        return OpenFailure.NOT_FOUND
    if err in _PERMISSION_ERRNOS:
        return OpenFailure.PERMISSION_DENIED
    return OpenFailure.OTHER


def _read_reason(err) -> ReadFailure:
    if err in _DISCONNECT_ERRNOS:
        return ReadFailure.DISCONNECTED
    if err == errno.EINTR:
        return ReadFailure.INTERRUPTED
    return ReadFailure.OTHER


class DeviceHandle:
    """Exclusive owner of one joystick descriptor.

    Construct with `DeviceHandle.open()`. Once closed, every operation other
    than `close()` raises `HandleClosedError` without touching the device.
    """

    def __init__(self, fd: int, path: str, io: DeviceIO, nonblocking: bool = False):
        self._fd: Optional[int] = fd
        self._path = path
        self._io = io
        self._nonblocking = nonblocking
        self._last_event: Optional[InputEvent] = None

    @classmethod
    def open(
        cls,
        path,
        *,
        nonblocking: bool = False,
        max_devices: Optional[int] = DEFAULT_MAX_DEVICES,
        io: Optional[DeviceIO] = None,
    ) -> "DeviceHandle":
        """Open `path` read-only.

        `max_devices` bounds the accepted descriptor value; pass None to
        accept any descriptor.
        """
        io = io or OsDeviceIO()
        path = os.fsdecode(path)
        flags = os.O_RDONLY
        if nonblocking:
            flags |= os.O_NONBLOCK
        try:
            fd = io.open(path, flags)
        except OSError as exc:
            raise DeviceOpenError(_open_reason(exc.errno), path, exc.errno, exc.strerror or str(exc)) from exc

        if max_devices is not None and fd >= max_devices:
            try:
                io.close(fd)
            except OSError:
                LOG.debug("close(%d) failed while rejecting %s", fd, path, exc_info=True)
            raise DeviceOpenError(
                OpenFailure.TOO_MANY_DEVICES,
                path,
                detail=f"descriptor {fd} exceeds device slot limit {max_devices}",
            )

        LOG.info("opened %s (fd=%d%s)", path, fd, ", nonblocking" if nonblocking else "")
        return cls(fd, path, io, nonblocking)

    # -- lifecycle ---------------------------------------------------------

    @property
    def path(self) -> str:
        return self._path

    @property
    def closed(self) -> bool:
        return self._fd is None

    @property
    def nonblocking(self) -> bool:
        return self._nonblocking

    @property
    def last_event(self) -> Optional[InputEvent]:
        """The most recent event decoded by this handle, if any."""
        return self._last_event

    def fileno(self) -> int:
        return self._require_open("fileno")

    def close(self):
        fd, self._fd = self._fd, None
        if fd is None:
            return
        try:
            self._io.close(fd)
        except OSError:
            LOG.debug("close(%d) failed for %s", fd, self._path, exc_info=True)
        LOG.info("closed %s", self._path)

    def __enter__(self):
        self._require_open("__enter__")
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __del__(self):
        if getattr(self, "_fd", None) is not None:
            LOG.warning("device handle for %s was never closed; releasing fd %d", self._path, self._fd)
            self.close()

    def __repr__(self):
        state = "closed" if self._fd is None else f"fd={self._fd}"
        return f"<DeviceHandle {self._path} {state}>"

    def _require_open(self, operation: str) -> int:
        if self._fd is None:
            raise HandleClosedError(operation)
        return self._fd

    # -- capability queries ------------------------------------------------

    def _ioctl(self, operation: str, request: int, buf):
        fd = self._require_open(operation)
        try:
            self._io.ioctl(fd, request, buf)
        except OSError as exc:
            raise QueryError(operation, exc.errno, exc.strerror or str(exc)) from exc
        return buf

    def _count(self, operation: str, request: int) -> int:
        return self._ioctl(operation, request, array.array("B", [0]))[0]

    def axes(self) -> int:
        return self._count("axes", JSIOCGAXES)

    def buttons(self) -> int:
        return self._count("buttons", JSIOCGBUTTONS)

    def name(self) -> str:
        """Driver-supplied name, at most 128 bytes.

        Falls back to "Unknown" when the driver leaves the buffer empty.
        """
        buf = bytearray(NAME_LENGTH)
        seed = DEFAULT_NAME.encode("ascii")
        buf[: len(seed)] = seed
        self._ioctl("name", JSIOCGNAME(NAME_LENGTH), buf)
        raw = bytes(buf).split(b"\0", 1)[0]
        return raw.decode("utf-8", "replace") or DEFAULT_NAME

    def axes_maps(self) -> Tuple[int, ...]:
        """Logical ABS_* code for each physical axis, one entry per axis."""
        count = self._count("axes_maps", JSIOCGAXES)
        buf = self._ioctl("axes_maps", JSIOCGAXMAP, array.array("B", [0] * ABS_CNT))
        return tuple(buf[: min(count, ABS_CNT)])

    def button_maps(self) -> Tuple[int, ...]:
        """Logical KEY/BTN code for each physical button."""
        count = self._count("button_maps", JSIOCGBUTTONS)
        buf = self._ioctl("button_maps", JSIOCGBTNMAP, array.array("H", [0] * BTNMAP_LEN))
        return tuple(buf[: min(count, BTNMAP_LEN)])

    def version(self) -> DriverVersion:
        buf = self._ioctl("version", JSIOCGVERSION, array.array("I", [0]))
        return DriverVersion.from_packed(buf[0])

    def info(self) -> DeviceInfo:
        return DeviceInfo(
            path=self._path,
            name=self.name(),
            version=self.version(),
            axes=self.axes(),
            buttons=self.buttons(),
            axes_maps=self.axes_maps(),
            button_maps=self.button_maps(),
        )

    # -- events ------------------------------------------------------------

    def _read_record(self, fd: int) -> bytes:
        retries = 0
        while True:
            try:
                return self._io.read(fd, EVENT_SIZE)
            except InterruptedError as exc:
                if retries >= EINTR_RETRIES:
                    raise ReadError(ReadFailure.INTERRUPTED, exc.errno, "interrupted twice") from exc
                retries += 1
                LOG.debug("read on %s interrupted; retrying", self._path)
            except BlockingIOError:
                return b""
            except OSError as exc:
                raise ReadError(_read_reason(exc.errno), exc.errno, exc.strerror or str(exc)) from exc

    def next_event(self) -> Optional[InputEvent]:
        """Read one event record.

        Returns None when nothing was read (end of stream, or no data pending
        on a non-blocking handle). Blocks otherwise until an event arrives.
        """
        fd = self._require_open("next_event")
        data = self._read_record(fd)
        if not data:
            return None
        if len(data) < EVENT_SIZE:
            raise ReadError(ReadFailure.SHORT_READ, detail=f"got {len(data)} of {EVENT_SIZE} bytes")
        event = decode_event(data)
        self._last_event = event
        LOG.debug("%s: %s", self._path, event)
        return event

    def events(self) -> Iterator[InputEvent]:
        """Yield events until `next_event()` returns None."""
        while True:
            event = self.next_event()
            if event is None:
                return
            yield event
