import ipaddress
import struct
from enum import IntEnum
from typing import Final

from arkade.watcher.frame import FrameInfo

__all__ = [
    "IP_HDRLEN",
    "IP",
    "IPProto",
    "ip_decode",
]


# Plain IP header with no options added
IP_HDRLEN: Final = 20


class IP:
    def __init__(self, buf: bytes) -> None:
        if len(buf) > IP_HDRLEN:
            buf = buf[:IP_HDRLEN]

        ip = struct.unpack("!BBHHHBBH4s4s", buf)
        self.ver = ip[0] >> 4
        self.ihl = ip[0] & 0xf
        self.tos = ip[1]
        self.tlen = ip[2]
        self.id = ip[3]
        self.flags = (ip[4] & 0xe000) >> 13
        self.off = ip[4] & 0x1fff
        self.ttl = ip[5]
        self.proto = ip[6]
        self.chksum = ip[7]
        self.src = str(ipaddress.IPv4Address(ip[8]))
        self.dst = str(ipaddress.IPv4Address(ip[9]))


# https://www.iana.org/assignments/protocol-numbers/protocol-numbers.xhtml
class IPProto(IntEnum):
    HOPOPTS = 0
    ICMP = 1
    IGMP = 2
    IPV4 = 4
    TCP = 6
    UDP = 17
    IPV6 = 41
    ROUTING = 43
    FRAGMENT = 44
    GRE = 47
    ESP = 50
    AH = 51
    ICMPV6 = 58
    NONE = 59
    DSTOPTS = 60
    SCTP = 132
    UDPLITE = 136


def ip_decode(fi: FrameInfo, buf: bytes) -> None:
    protocol = "IPv4"

    if len(buf) < IP_HDRLEN:
        fi.invalidate(protocol, "INVALID IPv4 PACKET: %d BYTES" % len(buf))
        return

    ip = IP(buf[:IP_HDRLEN])

    if ip.ver != 4:
        fi.invalidate(protocol, "BAD VERSION: %d, MUST BE 4" % ip.ver)
        return

    hdrlen = ip.ihl * 4
    if hdrlen < IP_HDRLEN or hdrlen > len(buf):
        fi.invalidate(protocol, "BAD HEADER LENGTH: %d BYTES" % hdrlen)
        return

    if ip.tlen < hdrlen:
        fi.invalidate(protocol, "BAD TOTAL LENGTH: %d, MUST BE >= %d BYTES"
                      % (ip.tlen, hdrlen))
        return

    # Link layer padding is not part of the payload, a truncated capture
    # keeps whatever made it into the buffer
    payload_len = min(ip.tlen, len(buf)) - hdrlen

    fi.advance(hdrlen, payload_len)

    fi.net_src = ip.src
    fi.net_dst = ip.dst

    fi.proto_stack.append("ip")

    # Only the first fragment carries the transport header, so it is still
    # decoded (see "IPv4 fragments" in DESIGN.md)
    if ip.off != 0:
        fi.fragmented = True
        fi.next_proto = None
        fi.next_proto_lookup_entry = None
        return

    fi.next_proto = ip.proto
    fi.next_proto_lookup_entry = "ip.proto"
