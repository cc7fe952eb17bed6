"""YAML configuration for device access and the reader thread

Example file:

    device:
      path: /dev/input/js0
      nonblocking: false
      max_devices: 32
    reader:
      poll_hz: 120
"""
import logging
from dataclasses import dataclass
from typing import Optional

import yaml

from core.errors import ConfigError

LOG = logging.getLogger("jsbridge.config")

DEFAULT_DEVICE_PATH = "/dev/input/js0"
# Bound on accepted descriptor values. Sizing limit inherited from the
# classic 32-slot joystick tables, not a kernel protocol limit.
DEFAULT_MAX_DEVICES = 32
DEFAULT_POLL_HZ = 120

_SECTIONS = {
    "device": {"path", "nonblocking", "max_devices"},
    "reader": {"poll_hz"},
}


@dataclass
class JoystickConfig:
    device_path: str = DEFAULT_DEVICE_PATH
    nonblocking: bool = False
    max_devices: Optional[int] = DEFAULT_MAX_DEVICES
    poll_hz: int = DEFAULT_POLL_HZ


def load_config(path: Optional[str] = None) -> JoystickConfig:
    """Read a YAML file into a JoystickConfig. No path means defaults."""
    if path is None:
        return JoystickConfig()
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigError(f"cannot read config {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {path}: {exc}") from exc
    LOG.debug("loaded config from %s", path)
    return config_from_dict(data or {})


def config_from_dict(data) -> JoystickConfig:
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping, got {type(data).__name__}")

    for key in data:
        if key not in _SECTIONS:
            LOG.warning("ignoring unknown config section '%s'", key)

    device = _section(data, "device")
    reader = _section(data, "reader")

    cfg = JoystickConfig()
    if "path" in device:
        value = device["path"]
        if not isinstance(value, str) or not value.strip():
            raise ConfigError("device.path must be a non-empty string")
        cfg.device_path = value.strip()
    if "nonblocking" in device:
        value = device["nonblocking"]
        if not isinstance(value, bool):
            raise ConfigError("device.nonblocking must be true or false")
        cfg.nonblocking = value
    if "max_devices" in device:
        value = device["max_devices"]
        if value is not None:
            value = _positive_int(value, "device.max_devices")
        cfg.max_devices = value
    if "poll_hz" in reader:
        cfg.poll_hz = _positive_int(reader["poll_hz"], "reader.poll_hz")
    return cfg


def _section(data, name):
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{name}' section must be a mapping")
    for key in section:
        if key not in _SECTIONS[name]:
            LOG.warning("ignoring unknown config key '%s.%s'", name, key)
    return section


def _positive_int(value, name) -> int:
    # bool is an int subclass; `true` is not a count
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{name} must be an integer")
    if value <= 0:
        raise ConfigError(f"{name} must be greater than zero")
    return value
