from __future__ import annotations

import abc
import asyncio
import logging
from dataclasses import dataclass
from typing import AsyncIterator, List, Optional

from ..state import ConnectionState, StateChannel

logger = logging.getLogger(__name__)

PROMPT = b">"
TERMINATOR = "\r"


@dataclass(frozen=True)
class DeviceInfo:
    address: str
    name: str = "-"
    kind: str = "serial"
    rssi: Optional[int] = None

    def __str__(self) -> str:
        extra = f" rssi={self.rssi}" if self.rssi is not None else ""
        return f"{self.kind}:{self.address} ({self.name}){extra}"


def split_response(text: str) -> List[str]:
    """Adapter text up to the prompt -> non-blank stripped lines."""
    text = (text or "").replace(">", "").replace("\r", "\n")
    return [ln.strip() for ln in text.split("\n") if ln.strip()]


class Transport(abc.ABC):
    """
    Duplex byte stream to an ELM327.

    Subclasses provide `_open`, `_close`, `_write` and `_read_chunk`; the base
    class handles command framing and prompt-delimited line reads. Transport
    level states (connecting / connected / disconnected) are published on
    `state_channel`.
    """

    kind = "transport"

    def __init__(self) -> None:
        self.state_channel = StateChannel()
        self._buffer = bytearray()
        self._open_flag = False
        self._reply_owed = False

    @property
    def is_connected(self) -> bool:
        return self._open_flag

    async def connect(self, target: Optional[str] = None, timeout: float = 7.0) -> None:
        self.state_channel.publish(ConnectionState.CONNECTING_TO_ADAPTER)
        try:
            await self._open(target, timeout)
        except BaseException:
            self._open_flag = False
            self.state_channel.publish(ConnectionState.DISCONNECTED)
            raise
        self._buffer.clear()
        self._reply_owed = False
        self._open_flag = True
        self.state_channel.publish(ConnectionState.CONNECTED_TO_ADAPTER)

    async def disconnect(self) -> None:
        was_open = self._open_flag
        self._open_flag = False
        self._buffer.clear()
        self._reply_owed = False
        try:
            await self._close()
        finally:
            if was_open or self.state_channel.state is not ConnectionState.DISCONNECTED:
                self.state_channel.publish(ConnectionState.DISCONNECTED)

    async def send(self, command: str) -> None:
        await self._write(f"{command}{TERMINATOR}".encode("ascii", errors="ignore"))

    async def receive_lines(self) -> List[str]:
        """Read until the prompt; the prompt itself never reaches the caller."""
        while True:
            idx = self._buffer.find(PROMPT)
            if idx >= 0:
                raw = bytes(self._buffer[:idx])
                del self._buffer[: idx + 1]
                return split_response(raw.decode("ascii", errors="ignore"))
            chunk = await self._read_chunk()
            self._buffer.extend(chunk)

    def discard_pending(self) -> None:
        """Drop bytes left over from an abandoned exchange; its reply may still be on the way."""
        if self._buffer:
            logger.debug("discarding %d stale byte(s)", len(self._buffer))
        self._buffer.clear()
        self._reply_owed = True

    async def resync(self, timeout: float) -> Optional[List[str]]:
        """
        Swallow the late reply of an abandoned exchange, up to its prompt.

        Waits at most `timeout`; returns the swallowed lines, or None when
        nothing was owed or the adapter stayed silent.
        """
        if not self._reply_owed:
            return None
        self._reply_owed = False
        try:
            lines = await asyncio.wait_for(self.receive_lines(), timeout)
        except asyncio.TimeoutError:
            # a partial late reply would prefix the next answer
            self._buffer.clear()
            logger.debug("no late reply within %.2fs", timeout)
            return None
        logger.debug("swallowed late reply %r", lines)
        return lines

    def connection_lost(self, reason: str = "") -> None:
        if self._open_flag:
            logger.warning("adapter connection lost%s", f": {reason}" if reason else "")
        self._open_flag = False
        self.state_channel.publish(ConnectionState.DISCONNECTED)

    async def discover_devices(self) -> AsyncIterator[DeviceInfo]:
        return
        yield  # pragma: no cover

    @abc.abstractmethod
    async def _open(self, target: Optional[str], timeout: float) -> None: ...

    @abc.abstractmethod
    async def _close(self) -> None: ...

    @abc.abstractmethod
    async def _write(self, data: bytes) -> None: ...

    @abc.abstractmethod
    async def _read_chunk(self) -> bytes:
        """Wait for at least one byte. Raise DeviceDisconnectedError at EOF."""
