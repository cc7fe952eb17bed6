"""Entry point for jsbridge

Prints the capabilities of a Linux joystick device and streams its events.
"""
import argparse
import logging
import select
import sys

from core.config import load_config
from core.errors import ConfigError, JoystickError
from core.state import DeviceInfo
from devices.joystick import DeviceHandle

LOG = logging.getLogger("jsbridge")

MODULE_LOGGERS = {
    "device": "jsbridge.device",
    "reader": "jsbridge.reader",
    "config": "jsbridge.config",
}


def _non_negative_int(raw):
    value = int(raw)
    if value < 0:
        raise argparse.ArgumentTypeError(f"must be zero or positive, got {value}")
    return value


def build_parser():
    parser = argparse.ArgumentParser(description="jsbridge: Linux joystick capabilities and events")
    parser.add_argument("--device", help="joystick device node (default from config, else /dev/input/js0)")
    parser.add_argument("--config", help="YAML config file")
    parser.add_argument("--info", action="store_true", help="print device capabilities and exit")
    parser.add_argument("--count", type=_non_negative_int, default=0, help="stop after N events (0 = run until Ctrl+C)")
    parser.add_argument("--nonblocking", action="store_true", help="open the device with O_NONBLOCK")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        help="Logging level (default: INFO)")
    parser.add_argument("--log-format", default="%(levelname)s:%(name)s:%(message)s",
                        help="Logging format string (default: %(levelname)s:%(name)s:%(message)s)")
    parser.add_argument("--debug-modules", nargs="*", default=[],
                        help="Modules to set to DEBUG level (e.g., 'device', 'reader', 'config')")
    return parser


def format_info(info: DeviceInfo) -> str:
    lines = [
        f"device:   {info.path}",
        f"name:     {info.name}",
        f"driver:   {info.version}",
        f"axes:     {info.axes}",
        f"buttons:  {info.buttons}",
        "axis map: " + " ".join(f"0x{code:02x}" for code in info.axes_maps),
        "btn map:  " + " ".join(f"0x{code:03x}" for code in info.button_maps),
    ]
    return "\n".join(lines)


def stream_events(js: DeviceHandle, count: int = 0, wait: float = 0.5) -> int:
    """Print events until `count` is reached or the stream ends."""
    seen = 0
    ready = False
    while not count or seen < count:
        event = js.next_event()
        if event is None:
            # readable but nothing to read: end of stream
            if not js.nonblocking or ready:
                break
            ready = bool(select.select([js], [], [], wait)[0])
            continue
        ready = False
        print(event, flush=True)
        seen += 1
    return seen


def main(argv=None):
    args = build_parser().parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level), format=args.log_format)
    for module in args.debug_modules:
        logger_name = MODULE_LOGGERS.get(module, f"jsbridge.{module}")
        logging.getLogger(logger_name).setLevel(logging.DEBUG)

    try:
        cfg = load_config(args.config)
    except ConfigError as exc:
        LOG.error("%s", exc)
        return 2

    path = args.device or cfg.device_path
    nonblocking = args.nonblocking or cfg.nonblocking

    try:
        with DeviceHandle.open(path, nonblocking=nonblocking, max_devices=cfg.max_devices) as js:
            if args.info:
                print(format_info(js.info()))
                return 0
            LOG.info("%s: %d axes, %d buttons; press Ctrl+C to stop", js.name(), js.axes(), js.buttons())
            stream_events(js, args.count)
    except JoystickError as exc:
        LOG.error("%s", exc)
        return 1
    except KeyboardInterrupt:
        LOG.info("shutdown requested")
    return 0


if __name__ == "__main__":
    sys.exit(main())
