"""
Walk a captured Ethernet frame down to its transport header.
"""


from collections.abc import Callable
from typing import Final

from arkade.watcher.eth import EtherType, eth_decode
from arkade.watcher.frame import FrameInfo
from arkade.watcher.ip import IPProto, ip_decode
from arkade.watcher.ip6 import ip6_decode
from arkade.watcher.ports import PortInfo
from arkade.watcher.tcp import tcp_decode
from arkade.watcher.udp import udp_decode

__all__ = ["decode_frame", "decode"]


DecodeRoutine = Callable[[FrameInfo, bytes], None]


# Decode routines keyed by the lookup entry set by the previous layer and the
# identifier it found in its header
_DECODE_TABLE: Final[dict[str, dict[int, DecodeRoutine]]] = {
    "eth.type": {
        EtherType.IP: ip_decode,
        EtherType.IPv6: ip6_decode,
    },
    "ip.proto": {
        IPProto.TCP: tcp_decode,
        IPProto.UDP: udp_decode,
    },
}


def decode_frame(buf: bytes, /) -> FrameInfo:
    """
    Run every decode routine that applies to a frame.

    Parameters
    ----------
    buf : bytes
        Raw frame starting at the Ethernet destination address.

    Returns
    -------
    FrameInfo
        What was learned about the frame. Never raises on malformed input,
        `invalid` is set instead.
    """
    fi = FrameInfo(len(buf), len(buf))

    eth_decode(fi, buf)

    while fi.next_proto is not None and fi.next_proto_lookup_entry is not None:
        routine = _DECODE_TABLE.get(fi.next_proto_lookup_entry, {}).get(fi.next_proto)
        if routine is None:
            break

        routine(fi, buf[fi.dissected:fi.dissected + fi.remaining])

    return fi


def decode(buf: bytes, /) -> PortInfo | None:
    """
    Extract the destination port of a frame.

    Parameters
    ----------
    buf : bytes
        Raw Ethernet frame.

    Returns
    -------
    PortInfo | None
        The destination port and transport protocol, or None if the frame is
        not a well formed TCP or UDP packet over IPv4/IPv6 (or is a non-first
        IPv4 fragment).
    """
    fi = decode_frame(buf)

    if fi.invalid or fi.fragmented or fi.transport is None or fi.t_dst is None:
        return None

    return PortInfo(fi.transport, fi.t_dst)
