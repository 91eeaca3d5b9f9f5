from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List

NO_HEADER_ECU = "NOHDR"


@dataclass(frozen=True)
class Message:
    """One reassembled reply from one ECU."""

    ecu: str
    data: bytes
    frames: int = field(default=1, compare=False)

    @property
    def mode(self) -> int | None:
        return self.data[0] if self.data else None

    def hex(self) -> str:
        return " ".join(f"{b:02X}" for b in self.data)


def group_messages(messages: Iterable[Message]) -> Dict[str, List[Message]]:
    out: Dict[str, List[Message]] = {}
    for msg in messages:
        out.setdefault(msg.ecu, []).append(msg)
    return out
