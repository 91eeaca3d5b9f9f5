from __future__ import annotations

import asyncio
import json
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Deque, Dict, Iterable, List, Optional

from elmobd.elm.errors import DeviceDisconnectedError
from elmobd.elm.protocol import OBDProtocol
from elmobd.obd2.scanner import OBDService
from elmobd.state import ConnectionState
from elmobd.transport.base import Transport


def _normalize_command(command: str) -> str:
    return "".join(command.strip().split()).upper()


class ReplayMismatchError(AssertionError):
    pass


class ReplayTransport(Transport):
    """
    Transport fed by recorded steps:
        {"command": "010C", "lines": ["7E8 04 41 0C 1A F8"]}
        {"command": "010C", "error": "timeout"}      # adapter stays silent
        {"command": "010C", "error": "disconnect"}   # link drops on write
    """

    kind = "replay"

    def __init__(self, steps: Iterable[Dict[str, Any]]) -> None:
        super().__init__()
        self._steps: Deque[Dict[str, Any]] = deque(steps)
        self._rx: "asyncio.Queue[bytes]" = asyncio.Queue()
        self.sent: List[str] = []

    @property
    def remaining(self) -> int:
        return len(self._steps)

    async def _open(self, target: Optional[str], timeout: float) -> None:
        return None

    async def _close(self) -> None:
        return None

    async def _write(self, data: bytes) -> None:
        command = data.decode("ascii", errors="ignore").replace("\r", "").replace("\n", "")
        if not command:
            return
        self.sent.append(command)
        if not self._steps:
            raise ReplayMismatchError(f"No replay steps left for command {command!r}")

        step = self._steps.popleft()
        expected = _normalize_command(str(step.get("command", "")))
        actual = _normalize_command(command)
        if expected and expected != actual:
            raise ReplayMismatchError(f"Replay mismatch: expected {step.get('command')!r}, got {command!r}")

        error = str(step.get("error", "")).lower().strip()
        if error in {"disconnect", "disconnected"}:
            self.connection_lost("replay")
            raise DeviceDisconnectedError("Device disconnected (replay)", operation="write")
        if error in {"timeout", "silence"}:
            return

        lines = step.get("lines") or []
        payload = "\r".join(str(line) for line in lines) + "\r\r>"
        self._rx.put_nowait(payload.encode("ascii", errors="ignore"))

    async def _read_chunk(self) -> bytes:
        return await self._rx.get()


@dataclass
class ReplayFixture:
    steps: List[Dict[str, Any]]
    meta: Dict[str, Any]
    expected: Dict[str, Any]


def load_fixture(path: Path) -> ReplayFixture:
    payload = json.loads(path.read_text(encoding="utf-8"))
    steps = payload.get("steps") or []
    meta = payload.get("meta") or {}
    expected = payload.get("expected") or {}
    return ReplayFixture(steps=steps, meta=meta, expected=expected)


async def build_replay_service(fixture: ReplayFixture) -> tuple[OBDService, ReplayTransport]:
    """Service already connected to the vehicle; only fixture steps reach the wire."""
    transport = ReplayTransport(fixture.steps)
    service = OBDService("demo", transport=transport, timeout=float(fixture.meta.get("timeout", 0.2)))
    service.elm.retry_delay_s = 0.0
    await service.elm.connect_to_adapter()

    service.elm.headers_on = bool(fixture.meta.get("headers_on", True))
    if fixture.meta.get("elm_version"):
        service.elm.elm_version = str(fixture.meta["elm_version"])
    service.elm.protocol = OBDProtocol.from_elm_id(str(fixture.meta.get("protocol", "6")))
    transport.state_channel.publish(ConnectionState.CONNECTED_TO_VEHICLE)
    return service, transport
