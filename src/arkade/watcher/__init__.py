from arkade.watcher.decode import decode, decode_frame
from arkade.watcher.errors import CaptureError, WatcherError
from arkade.watcher.frame import FrameInfo
from arkade.watcher.ports import (
    PORT_MAX,
    PORT_MIN,
    ParsePortError,
    PortInfo,
    Protocol,
    format_ports,
    parse_ports,
)
from arkade.watcher.portset import PORT_SPACE, PortSet, PortTable
from arkade.watcher.watcher import DEFAULT_WINDOW, PortWatcher

__all__ = [
    "decode",
    "decode_frame",
    "CaptureError",
    "WatcherError",
    "FrameInfo",
    "PORT_MAX",
    "PORT_MIN",
    "ParsePortError",
    "PortInfo",
    "Protocol",
    "format_ports",
    "parse_ports",
    "PORT_SPACE",
    "PortSet",
    "PortTable",
    "DEFAULT_WINDOW",
    "PortWatcher",
]
