"""Background reader for a single joystick handle

`JoystickReader` drains one `DeviceHandle` on its own thread, keeps a
`DeviceState` of the latest axis/button values and hands every event to its
subscribers. One reader per handle; handles are never shared between threads.
"""
import logging
import threading
from typing import List, Optional

from core.config import DEFAULT_POLL_HZ, JoystickConfig
from core.errors import JoystickError
from core.reader import DeviceReader, EventCallback
from core.state import DeviceState, InputEvent
from devices.joystick import DeviceHandle, DeviceIO

LOG = logging.getLogger("jsbridge.reader")


class JoystickReader(DeviceReader):
    """Polls a non-blocking joystick handle and emits InputEvents.

    Either pass an already-open `handle` (the caller keeps ownership) or let
    `start()` open `path` itself, in which case `stop()` closes it once the
    thread has exited.
    """

    def __init__(
        self,
        path: Optional[str] = None,
        *,
        handle: Optional[DeviceHandle] = None,
        poll_hz: int = DEFAULT_POLL_HZ,
        max_devices: Optional[int] = None,
        io: Optional[DeviceIO] = None,
        stop_timeout: float = 1.0,
    ):
        if path is None and handle is None:
            raise ValueError("JoystickReader needs a device path or an open handle")
        self._path = path if path is not None else handle.path
        self._handle = handle
        self._owns_handle = handle is None
        self._interval = 1.0 / max(1, poll_hz)
        self._max_devices = max_devices
        self._io = io
        self._stop_timeout = stop_timeout
        self._subs: List[EventCallback] = []
        self._t: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self._lock = threading.Lock()
        self._state = DeviceState(self._path)
        self._events = 0
        self.error: Optional[JoystickError] = None

    @classmethod
    def from_config(cls, cfg: JoystickConfig, io: Optional[DeviceIO] = None) -> "JoystickReader":
        return cls(cfg.device_path, poll_hz=cfg.poll_hz, max_devices=cfg.max_devices, io=io)

    @property
    def running(self) -> bool:
        return self._t is not None and self._t.is_alive()

    @property
    def events_read(self) -> int:
        return self._events

    def subscribe(self, callback: EventCallback):
        self._subs.append(callback)

    def state(self) -> DeviceState:
        with self._lock:
            return self._state.copy()

    def start(self):
        if self.running:
            if self._stop.is_set():
                LOG.warning("previous reader thread for %s has not exited; not starting another", self._path)
            return
        if self._handle is None or self._handle.closed:
            kwargs = {"nonblocking": True, "max_devices": self._max_devices}
            if self._io is not None:
                kwargs["io"] = self._io
            self._handle = DeviceHandle.open(self._path, **kwargs)
            self._owns_handle = True
        elif not self._handle.nonblocking:
            LOG.warning("%s is in blocking mode; stop() waits for the next event", self._path)
        self.error = None
        self._stop.clear()
        self._t = threading.Thread(target=self._loop, name="JoystickReader", daemon=True)
        self._t.start()
        LOG.info("JoystickReader started on %s", self._path)

    def stop(self):
        self._stop.set()
        if self._t:
            self._t.join(timeout=self._stop_timeout)
            if self._t.is_alive():
                # keep the thread and the handle until it is really gone
                LOG.warning("reader thread for %s did not exit", self._path)
                return
            self._t = None
        if self._owns_handle and self._handle is not None:
            self._handle.close()
            self._handle = None

    def _emit(self, event: InputEvent):
        with self._lock:
            self._state.apply(event)
            self._events += 1
        for cb in self._subs:
            try:
                cb(event)
            except Exception:
                LOG.exception("subscriber callback failed")

    def _loop(self):
        handle = self._handle
        while not self._stop.is_set():
            try:
                event = handle.next_event()
            except JoystickError as exc:
                if self._stop.is_set():
                    LOG.debug("reader for %s stopped: %s", self._path, exc)
                    return
                LOG.error("reading %s failed: %s", self._path, exc)
                self.error = exc
                return
            if event is None:
                self._stop.wait(self._interval)
                continue
            self._emit(event)
