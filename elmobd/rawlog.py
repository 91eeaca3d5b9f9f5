from __future__ import annotations

import time
from pathlib import Path
from typing import List, Optional, Union

from .config import raw_log_path


class RawLogger:
    """
    Append-only adapter traffic log, usable as ELM327(raw_logger=...).

        [2024-05-01 10:00:00] TX 010C
        [2024-05-01 10:00:00] RX 010C
          7E8 04 41 0C 1A F8
    """

    def __init__(self, path: Union[str, Path, None] = None):
        self.path = Path(path).expanduser() if path else raw_log_path()
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def __call__(self, direction: str, command: str, lines: List[str]) -> None:
        ts = time.strftime("%Y-%m-%d %H:%M:%S")
        with self.path.open("a", encoding="utf-8") as f:
            f.write(f"[{ts}] {direction} {command}\n")
            for ln in lines:
                f.write(f"  {ln}\n")

    def note(self, text: str, *, when: Optional[float] = None) -> None:
        """Free-form marker line, e.g. the start of a session."""
        ts = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(when))
        with self.path.open("a", encoding="utf-8") as f:
            f.write(f"[{ts}] -- {text}\n")
