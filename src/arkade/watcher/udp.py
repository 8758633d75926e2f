import struct
from typing import Final

from arkade.watcher.frame import FrameInfo
from arkade.watcher.ports import Protocol

__all__ = [
    "UDP_HDRLEN",
    "UDP",
    "udp_decode",
]


UDP_HDRLEN: Final = 8


class UDP:
    def __init__(self, buf: bytes) -> None:
        if len(buf) > UDP_HDRLEN:
            buf = buf[:UDP_HDRLEN]

        udp = struct.unpack("!HHHH", buf)
        self.sport = udp[0]
        self.dport = udp[1]
        self.len = udp[2]
        self.chksum = udp[3]


def udp_decode(fi: FrameInfo, buf: bytes) -> None:
    protocol = "UDP"

    if len(buf) < UDP_HDRLEN:
        fi.invalidate(protocol, "INVALID UDP DATAGRAM: %d BYTES" % len(buf))
        return

    udp = UDP(buf[:UDP_HDRLEN])

    if udp.len < UDP_HDRLEN:
        fi.invalidate(protocol, "INVALID LENGTH: %d, MUST BE >= 8 BYTES" % udp.len)
        return

    fi.advance(UDP_HDRLEN, len(buf) - UDP_HDRLEN)

    fi.transport = Protocol.UDP
    fi.t_src = udp.sport
    fi.t_dst = udp.dport

    fi.next_proto = None
    fi.next_proto_lookup_entry = None

    fi.proto_stack.append("udp")
