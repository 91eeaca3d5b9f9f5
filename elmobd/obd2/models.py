from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ..elm.protocol import OBDProtocol
from ..pids.catalog import OBDCommand


@dataclass
class OBDInfo:
    """What `connect` learned about the vehicle."""

    protocol: Optional[OBDProtocol] = None
    elm_version: Optional[str] = None
    ecus: Tuple[str, ...] = ()
    supported_pids: List[OBDCommand] = field(default_factory=list)
    vin: Optional[str] = None

    @property
    def protocol_description(self) -> str:
        return self.protocol.description if self.protocol else "Unknown"

    def summary(self) -> str:
        parts = [
            f"protocol={self.protocol_description}",
            f"adapter={self.elm_version or 'unknown'}",
            f"ecus={','.join(self.ecus) or '-'}",
            f"pids={len(self.supported_pids)}",
        ]
        if self.vin:
            parts.append(f"vin={self.vin}")
        return " ".join(parts)
