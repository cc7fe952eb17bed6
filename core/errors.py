"""Error taxonomy for joystick device access

Every fallible operation raises one of these; nothing returns a sentinel.
The underlying OS error number is kept on `errno` when there is one.
"""
import enum
from typing import Optional


class OpenFailure(enum.Enum):
    NOT_FOUND = "not-found"
    PERMISSION_DENIED = "permission-denied"
    TOO_MANY_DEVICES = "too-many-devices"
    OTHER = "other"


class ReadFailure(enum.Enum):
    DISCONNECTED = "disconnected"
    INTERRUPTED = "interrupted"
    SHORT_READ = "short-read"
    OTHER = "other"


class JoystickError(Exception):
    """Base class for everything raised by the device layer."""


class DeviceOpenError(JoystickError):
    def __init__(self, reason: OpenFailure, path: str, errno: Optional[int] = None, detail: str = ""):
        self.reason = reason
        self.path = path
        self.errno = errno
        msg = f"cannot open {path}: {reason.value}"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)


class QueryError(JoystickError):
    """A capability ioctl failed (device unplugged, not a joystick, bad fd)."""

    def __init__(self, operation: str, errno: Optional[int] = None, detail: str = ""):
        self.operation = operation
        self.errno = errno
        msg = f"cannot retrieve {operation}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class ReadError(JoystickError):
    def __init__(self, reason: ReadFailure, errno: Optional[int] = None, detail: str = ""):
        self.reason = reason
        self.errno = errno
        msg = f"event read failed: {reason.value}"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)


class HandleClosedError(JoystickError):
    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"{operation}() called on a closed device handle")


class ConfigError(JoystickError):
    """Raised when the YAML configuration is invalid."""
