"""Event values and lightweight capability DTOs"""
import enum
from dataclasses import dataclass, field
from typing import Dict, NamedTuple, Tuple, Union

JS_EVENT_BUTTON = 0x01
JS_EVENT_AXIS = 0x02
JS_EVENT_INIT = 0x80


class EventKind(enum.IntEnum):
    BUTTON = JS_EVENT_BUTTON
    AXIS = JS_EVENT_AXIS


@dataclass(frozen=True)
class UnknownEventType:
    """A type byte the driver sent that is neither button nor axis.

    `tag` is the raw byte, init bit included.
    """

    tag: int


EventType = Union[EventKind, UnknownEventType]


@dataclass(frozen=True)
class InputEvent:
    """One decoded js_event record. A snapshot: it keeps no link to the device."""

    timestamp: int  # ms, kernel counter
    type_tag: int
    number: int
    value: int

    @property
    def type(self) -> EventType:
        base = self.type_tag & ~JS_EVENT_INIT
        try:
            return EventKind(base)
        except ValueError:
            return UnknownEventType(self.type_tag)

    @property
    def is_init(self) -> bool:
        """True for the synthetic events the driver sends on open."""
        return bool(self.type_tag & JS_EVENT_INIT)

    @property
    def is_known(self) -> bool:
        return isinstance(self.type, EventKind)

    def __str__(self):
        kind = self.type
        label = kind.name.lower() if isinstance(kind, EventKind) else f"type=0x{kind.tag:02x}"
        init = " init" if self.is_init else ""
        return f"{self.timestamp:>10} {label}{init} #{self.number} = {self.value}"


class DriverVersion(NamedTuple):
    major: int
    minor: int
    patch: int

    @classmethod
    def from_packed(cls, packed: int) -> "DriverVersion":
        return cls((packed >> 16) & 0xFF, (packed >> 8) & 0xFF, packed & 0xFF)

    @property
    def packed(self) -> int:
        return (self.major << 16) | (self.minor << 8) | self.patch

    def __str__(self):
        return f"{self.major}.{self.minor}.{self.patch}"


@dataclass(frozen=True)
class DeviceInfo:
    path: str
    name: str
    version: DriverVersion
    axes: int
    buttons: int
    axes_maps: Tuple[int, ...] = ()
    button_maps: Tuple[int, ...] = ()


@dataclass
class DeviceState:
    device: str
    axes: Dict[int, int] = field(default_factory=dict)  # axis number -> raw s16 value
    buttons: Dict[int, bool] = field(default_factory=dict)  # button number -> pressed

    def apply(self, event: InputEvent) -> bool:
        """Fold an event into the state. Returns False for unknown event types."""
        kind = event.type
        if kind is EventKind.AXIS:
            self.axes[event.number] = event.value
        elif kind is EventKind.BUTTON:
            self.buttons[event.number] = bool(event.value)
        else:
            return False
        return True

    def copy(self) -> "DeviceState":
        return DeviceState(self.device, dict(self.axes), dict(self.buttons))
