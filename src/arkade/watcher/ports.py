"""
Port descriptors and the textual port list format, e.g. "25565/tcp,34197/udp".
"""


import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum
from typing import Final

__all__ = [
    "PORT_MIN",
    "PORT_MAX",
    "Protocol",
    "PortInfo",
    "ParsePortError",
    "parse_ports",
    "format_ports",
]


PORT_MIN: Final = 0
PORT_MAX: Final = 0xffff


class Protocol(StrEnum):
    TCP = "tcp"
    UDP = "udp"


@dataclass(frozen=True, order=True)
class PortInfo:
    """
    A transport port together with its protocol. Renders as "<port>/<protocol>".
    """

    protocol: Protocol
    port: int

    def __post_init__(self) -> None:
        # Accept plain strings, e.g. PortInfo("tcp", 80)
        object.__setattr__(self, "protocol", Protocol(self.protocol))

        if isinstance(self.port, bool) or not isinstance(self.port, int):
            raise TypeError(f"port must be an integer, got: {type(self.port).__name__}")

        if not PORT_MIN <= self.port <= PORT_MAX:
            raise ValueError(f"port out of range: {self.port}, must be in "
                             f"[{PORT_MIN}, {PORT_MAX}]")

    @classmethod
    def tcp(cls, port: int, /) -> "PortInfo":
        return cls(Protocol.TCP, port)

    @classmethod
    def udp(cls, port: int, /) -> "PortInfo":
        return cls(Protocol.UDP, port)

    def __str__(self) -> str:
        return f"{self.port}/{self.protocol}"


class ParsePortError(ValueError):
    """
    Raised when a port list can't be parsed. `token` holds the offending part
    of the input.
    """

    def __init__(self, message: str, token: str) -> None:
        super().__init__(message)
        self.token = token


_PORT_RE: Final = re.compile(r"^\s*([0-9]+)\s*/\s*([^\s/,]+)\s*$")


def parse_ports(text: str, /) -> list[PortInfo]:
    """
    Parse a comma separated list of port specifications.

    Parameters
    ----------
    text : str
        The list to parse, e.g. "25565/tcp,34197/udp". The protocol is case
        insensitive and whitespace around tokens is ignored.

    Raises
    ------
    ParsePortError
        If any element is malformed, the port does not fit in 16 bits or the
        protocol is neither tcp nor udp. Nothing is silently dropped.

    Returns
    -------
    list[PortInfo]
        Descriptors in input order. Empty for empty (or blank) input.
    """
    if not text.strip():
        return []

    ports = []

    for token in text.split(","):
        match = _PORT_RE.match(token)
        if match is None:
            raise ParsePortError(f"invalid port specification: '{token.strip()}', "
                                 f"expected <port>/<tcp|udp>", token.strip())

        port = int(match.group(1))
        if port > PORT_MAX:
            raise ParsePortError(f"port out of range: {match.group(1)}, must be in "
                                 f"[{PORT_MIN}, {PORT_MAX}]", match.group(1))

        try:
            protocol = Protocol(match.group(2).lower())
        except ValueError:
            raise ParsePortError(f"invalid protocol: {match.group(2)}",
                                 match.group(2)) from None

        ports.append(PortInfo(protocol, port))

    return ports


def format_ports(ports: Iterable[PortInfo], /) -> str:
    """
    Render descriptors in the format accepted by `parse_ports`.
    """
    return ",".join(str(port) for port in ports)
