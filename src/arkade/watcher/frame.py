from dataclasses import dataclass, field

from arkade.watcher.ports import Protocol

__all__ = ["FrameInfo"]


@dataclass
class FrameInfo:
    """
    State shared between the per-layer decode routines for a single frame.

    Attributes
    ----------
    captured : int
        Number of bytes captured.

    remaining : int
        Number of bytes the next decode routine may look at.

    dissected : int
        Offset of the next header within the frame.

    next_proto : int | None
        Identifier of the next header, looked up in the decode table under
        `next_proto_lookup_entry`. None stops the walk.
    """

    captured: int
    remaining: int
    dissected: int = 0

    next_proto: int | None = None
    next_proto_lookup_entry: str | None = None

    dl_src: str | None = None
    dl_dst: str | None = None

    net_src: str | None = None
    net_dst: str | None = None

    transport: Protocol | None = None
    t_src: int | None = None
    t_dst: int | None = None

    fragmented: bool = False

    proto_stack: list[str] = field(default_factory=list)

    invalid: bool = False
    invalid_proto_name: str | None = None
    invalid_msg: str | None = None

    def invalidate(self, proto_name: str, msg: str) -> None:
        self.invalid = True
        self.invalid_proto_name = proto_name
        self.invalid_msg = msg
        self.next_proto = None
        self.next_proto_lookup_entry = None

    def advance(self, hdrlen: int, payload_len: int) -> None:
        self.dissected += hdrlen
        self.remaining = payload_len
