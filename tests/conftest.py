"""Shared fixtures: a simulated joydev backend for DeviceHandle."""
import errno
import os
from collections import deque

import pytest

from core.state import InputEvent
from devices.jsapi import (
    JSIOCGAXES,
    JSIOCGAXMAP,
    JSIOCGBTNMAP,
    JSIOCGBUTTONS,
    JSIOCGNAME,
    JSIOCGVERSION,
    NAME_LENGTH,
    encode_event,
)


class FakeJoystickIO:
    """Answers joystick ioctls and serves queued reads.

    Queue items for `read()` are bytes, or exceptions to raise. An empty
    queue reads as end-of-stream, or EAGAIN when opened with O_NONBLOCK.
    """

    def __init__(self, *, name=b"Fake Pad", axes=3, buttons=4, version=0x020100,
                 axes_maps=(0x00, 0x01, 0x02), button_maps=(0x130, 0x131, 0x133, 0x134), fd=3):
        self.name = name
        self.axes = axes
        self.buttons = buttons
        self.version = version
        self.axes_maps = axes_maps
        self.button_maps = button_maps
        self.fd = fd
        self.open_error = None
        self.ioctl_error = None
        self.reads = deque()
        self.calls = []
        self.flags = {}
        self.open_fds = set()

    def queue(self, *items):
        for item in items:
            if isinstance(item, InputEvent):
                item = encode_event(item)
            self.reads.append(item)

    def open(self, path, flags):
        self.calls.append(("open", path))
        if self.open_error is not None:
            raise OSError(self.open_error, os.strerror(self.open_error), path)
        self.flags[self.fd] = flags
        self.open_fds.add(self.fd)
        return self.fd

    def ioctl(self, fd, request, buf):
        self.calls.append(("ioctl", request))
        if self.ioctl_error is not None:
            raise OSError(self.ioctl_error, os.strerror(self.ioctl_error))
        if request == JSIOCGAXES:
            buf[0] = self.axes
        elif request == JSIOCGBUTTONS:
            buf[0] = self.buttons
        elif request == JSIOCGVERSION:
            buf[0] = self.version
        elif request == JSIOCGNAME(NAME_LENGTH):
            if self.name is not None:
                data = self.name[: NAME_LENGTH - 1] + b"\0"
                buf[: len(data)] = data
        elif request == JSIOCGAXMAP:
            for i, code in enumerate(self.axes_maps):
                buf[i] = code
        elif request == JSIOCGBTNMAP:
            for i, code in enumerate(self.button_maps):
                buf[i] = code
        else:
            raise OSError(errno.ENOTTY, os.strerror(errno.ENOTTY))
        return 0

    def read(self, fd, size):
        self.calls.append(("read", size))
        if not self.reads:
            if self.flags.get(fd, 0) & os.O_NONBLOCK:
                raise OSError(errno.EAGAIN, os.strerror(errno.EAGAIN))
            return b""
        item = self.reads.popleft()
        if isinstance(item, BaseException):
            raise item
        return item[:size]

    def close(self, fd):
        self.calls.append(("close", fd))
        self.open_fds.discard(fd)


@pytest.fixture
def fake_io():
    return FakeJoystickIO()
