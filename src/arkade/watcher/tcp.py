import struct
from typing import Final

from arkade.watcher.frame import FrameInfo
from arkade.watcher.ports import Protocol

__all__ = [
    "TCP_HDRLEN",
    "TCP",
    "tcp_decode",
]


TCP_HDRLEN: Final = 20


class TCP:
    def __init__(self, buf: bytes) -> None:
        if len(buf) > TCP_HDRLEN:
            buf = buf[:TCP_HDRLEN]

        tcp = struct.unpack("!HHLLHHHH", buf)
        self.sport = tcp[0]
        self.dport = tcp[1]
        self.seq = tcp[2]
        self.ack = tcp[3]
        self.off = (tcp[4] & 0xf000) >> 12
        self.flags = tcp[4] & 0x01ff
        self.win = tcp[5]
        self.chksum = tcp[6]
        self.uptr = tcp[7]


def tcp_decode(fi: FrameInfo, buf: bytes) -> None:
    protocol = "TCP"

    if len(buf) < TCP_HDRLEN:
        fi.invalidate(protocol, "INVALID TCP SEGMENT: %d BYTES" % len(buf))
        return

    tcp = TCP(buf[:TCP_HDRLEN])

    if tcp.off < 5:
        fi.invalidate(protocol, "BAD DATA OFFSET: %d, MUST BE >= 5" % tcp.off)
        return

    fi.advance(TCP_HDRLEN, len(buf) - TCP_HDRLEN)

    fi.transport = Protocol.TCP
    fi.t_src = tcp.sport
    fi.t_dst = tcp.dport

    # Nothing above the transport layer is of interest
    fi.next_proto = None
    fi.next_proto_lookup_entry = None

    fi.proto_stack.append("tcp")
