import struct
from enum import IntEnum
from typing import Final

from arkade.watcher.frame import FrameInfo

__all__ = [
    "ETH_HDRLEN",
    "Eth",
    "EtherType",
    "eth_decode",
]


ETH_HDRLEN: Final = 14


class Eth:
    def __init__(self, buf: bytes) -> None:
        if len(buf) > ETH_HDRLEN:
            buf = buf[:ETH_HDRLEN]

        eth = struct.unpack("!6s6sH", buf)

        self.dst = ":".join(f"{b:02x}" for b in eth[0])
        self.src = ":".join(f"{b:02x}" for b in eth[1])
        self.type = eth[2]


# https://www.iana.org/assignments/ieee-802-numbers/ieee-802-numbers.xhtml
class EtherType(IntEnum):
    IP = 0x0800
    ARP = 0x0806
    REVARP = 0x8035
    VLAN = 0x8100
    IPv6 = 0x86dd
    PPPOED = 0x8863
    PPPOES = 0x8864
    MPLS = 0x8847
    EAPOL = 0x888e
    IEEE_802_1AD = 0x88a8
    LLDP = 0x88cc


def eth_decode(fi: FrameInfo, buf: bytes) -> None:
    protocol = "Eth"

    if len(buf) < ETH_HDRLEN:
        fi.invalidate(protocol, "INVALID ETH FRAME: %d BYTES" % len(buf))
        return

    eth = Eth(buf[:ETH_HDRLEN])

    fi.advance(ETH_HDRLEN, len(buf) - ETH_HDRLEN)

    fi.dl_src = eth.src
    fi.dl_dst = eth.dst

    fi.next_proto = eth.type
    fi.next_proto_lookup_entry = "eth.type"

    fi.proto_stack.append("eth")
