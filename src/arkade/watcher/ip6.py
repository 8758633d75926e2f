import ipaddress
import struct
from typing import Final

from arkade.watcher.frame import FrameInfo

__all__ = [
    "IP6_HDRLEN",
    "IPv6",
    "ip6_decode",
]


IP6_HDRLEN: Final = 40


class IPv6:
    def __init__(self, buf: bytes) -> None:
        if len(buf) > IP6_HDRLEN:
            buf = buf[:IP6_HDRLEN]

        ip6 = struct.unpack("!LHBB16s16s", buf)
        self.ver = ip6[0] >> 28
        self.tc = (ip6[0] & 0x0ff00000) >> 20
        self.flow = ip6[0] & 0x000fffff
        self.plen = ip6[1]
        self.nh = ip6[2]
        self.hlim = ip6[3]
        self.src = str(ipaddress.IPv6Address(ip6[4]))
        self.dst = str(ipaddress.IPv6Address(ip6[5]))


def ip6_decode(fi: FrameInfo, buf: bytes) -> None:
    protocol = "IPv6"

    if len(buf) < IP6_HDRLEN:
        fi.invalidate(protocol, "INVALID IPv6 PACKET: %d BYTES" % len(buf))
        return

    ip6 = IPv6(buf[:IP6_HDRLEN])

    if ip6.ver != 6:
        fi.invalidate(protocol, "BAD VERSION: %d, MUST BE 6" % ip6.ver)
        return

    payload_len = min(ip6.plen, len(buf) - IP6_HDRLEN)

    fi.advance(IP6_HDRLEN, payload_len)

    fi.net_src = ip6.src
    fi.net_dst = ip6.dst

    # Extension headers are not walked, only a transport header directly
    # after the fixed header is looked at
    fi.next_proto = ip6.nh
    fi.next_proto_lookup_entry = "ip.proto"

    fi.proto_stack.append("ip6")
