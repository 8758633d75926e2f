"""
Fixed size port membership sets.
"""


from collections.abc import Iterator
from typing import Final

from arkade.watcher.ports import PORT_MAX, PORT_MIN, PortInfo, Protocol

__all__ = ["PORT_SPACE", "PortSet", "PortTable"]


# Number of distinct ports, the domain of every set
PORT_SPACE: Final = PORT_MAX + 1


class PortSet:
    """
    Membership over the full 16-bit port space for a single protocol, one bit
    per port. The domain never grows or shrinks.
    """

    __slots__ = ("protocol", "_bits")

    def __init__(self, protocol: Protocol | str, /) -> None:
        self.protocol = Protocol(protocol)
        self._bits = bytearray(PORT_SPACE // 8)

    @staticmethod
    def _index(port: int) -> tuple[int, int]:
        if not PORT_MIN <= port <= PORT_MAX:
            raise ValueError(f"port out of range: {port}, must be in "
                             f"[{PORT_MIN}, {PORT_MAX}]")
        return port >> 3, port & 0x7

    def _check(self, other: "PortSet") -> None:
        if other.protocol != self.protocol:
            raise ValueError(f"protocol mismatch: {self.protocol} and {other.protocol}")

    def set(self, port: int, present: bool = True, /) -> None:
        byte, bit = self._index(port)
        if present:
            self._bits[byte] |= 1 << bit
        else:
            self._bits[byte] &= ~(1 << bit) & 0xff

    def clear(self, port: int, /) -> None:
        self.set(port, False)

    def test(self, port: int, /) -> bool:
        byte, bit = self._index(port)
        return bool(self._bits[byte] >> bit & 1)

    def reset(self) -> None:
        """
        Clear every bit.
        """
        self._bits[:] = bytes(len(self._bits))

    def count(self) -> int:
        """
        Number of ports present in the set.
        """
        return int.from_bytes(self._bits, "big").bit_count()

    def intersect(self, other: "PortSet", /) -> "PortSet":
        """
        Return a new set holding the ports present in both sets.
        """
        result = self.copy()
        result.intersect_update(other)
        return result

    def intersect_update(self, other: "PortSet", /) -> None:
        """
        Keep only the ports that are also present in `other`.
        """
        self._check(other)
        merged = int.from_bytes(self._bits, "big") & int.from_bytes(other._bits, "big")
        self._bits[:] = merged.to_bytes(len(self._bits), "big")

    def copy(self) -> "PortSet":
        new = PortSet(self.protocol)
        new._bits[:] = self._bits
        return new

    def __and__(self, other: "PortSet") -> "PortSet":
        return self.intersect(other)

    def __iand__(self, other: "PortSet") -> "PortSet":
        self.intersect_update(other)
        return self

    def __contains__(self, port: int) -> bool:
        return self.test(port)

    def __iter__(self) -> Iterator[int]:
        for byte_index, byte in enumerate(self._bits):
            if not byte:
                continue
            for bit in range(8):
                if byte >> bit & 1:
                    yield (byte_index << 3) | bit

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PortSet):
            return NotImplemented
        return self.protocol == other.protocol and self._bits == other._bits

    def __repr__(self) -> str:
        return f"PortSet({self.protocol!s}, count={self.count()})"


class PortTable:
    """
    One `PortSet` per transport protocol, addressed with `PortInfo`.
    """

    __slots__ = ("_sets",)

    def __init__(self) -> None:
        self._sets = {protocol: PortSet(protocol) for protocol in Protocol}

    def __getitem__(self, protocol: Protocol | str) -> PortSet:
        return self._sets[Protocol(protocol)]

    def set(self, info: PortInfo, present: bool = True, /) -> None:
        self._sets[info.protocol].set(info.port, present)

    def test(self, info: PortInfo, /) -> bool:
        return self._sets[info.protocol].test(info.port)

    def reset(self) -> None:
        for ports in self._sets.values():
            ports.reset()

    def count(self) -> int:
        return sum(ports.count() for ports in self._sets.values())

    def intersect_update(self, other: "PortTable", /) -> None:
        for protocol, ports in self._sets.items():
            ports.intersect_update(other[protocol])

    def __contains__(self, info: PortInfo) -> bool:
        return self.test(info)

    def __iter__(self) -> Iterator[PortInfo]:
        for protocol, ports in self._sets.items():
            for port in ports:
                yield PortInfo(protocol, port)
