from __future__ import annotations

import asyncio
from typing import Iterable, List, Tuple

from .pids.catalog import OBDCommand


class PIDRequestList:
    """
    PIDs polled by continuous updates.

    Every mutation goes through one lock; readers take a snapshot tuple and
    never see a half-applied change. Order is insertion order, no duplicates.
    """

    def __init__(self, initial: Iterable[OBDCommand] = ()):
        self._items: List[OBDCommand] = []
        self._lock = asyncio.Lock()
        for cmd in initial:
            if cmd not in self._items:
                self._items.append(cmd)

    async def add(self, *cmds: OBDCommand) -> None:
        async with self._lock:
            for cmd in cmds:
                if cmd not in self._items:
                    self._items.append(cmd)

    async def remove(self, *cmds: OBDCommand) -> None:
        async with self._lock:
            self._items = [c for c in self._items if c not in cmds]

    async def clear(self) -> None:
        async with self._lock:
            self._items = []

    async def replace(self, cmds: Iterable[OBDCommand]) -> None:
        async with self._lock:
            self._items = []
            for cmd in cmds:
                if cmd not in self._items:
                    self._items.append(cmd)

    def snapshot(self) -> Tuple[OBDCommand, ...]:
        return tuple(self._items)

    def __contains__(self, cmd: object) -> bool:
        return cmd in self._items

    def __len__(self) -> int:
        return len(self._items)
