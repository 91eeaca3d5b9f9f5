from __future__ import annotations

import asyncio
from typing import Optional

from ..elm.errors import AdapterConnectionError, CommunicationError, DeviceDisconnectedError
from .base import Transport

DEFAULT_HOST = "192.168.0.10"
DEFAULT_PORT = 35000


def parse_target(target: Optional[str], host: str, port: int) -> tuple[str, int]:
    """'host', 'host:port' or None -> (host, port)."""
    if not target:
        return host, port
    if ":" in target:
        h, p = target.rsplit(":", 1)
        try:
            return h or host, int(p)
        except ValueError:
            return h or host, port
    return target, port


class TcpTransport(Transport):
    """Wi-Fi adapters: plain TCP socket, usually 192.168.0.10:35000."""

    kind = "wifi"

    def __init__(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT):
        super().__init__()
        self.host = host
        self.port = port
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None

    async def _open(self, target: Optional[str], timeout: float) -> None:
        self.host, self.port = parse_target(target, self.host, self.port)
        try:
            self._reader, self._writer = await asyncio.open_connection(self.host, self.port)
        except OSError as e:
            raise AdapterConnectionError(f"Cannot reach {self.host}:{self.port}", cause=e) from e

    async def _close(self) -> None:
        writer, self._writer, self._reader = self._writer, None, None
        if writer is None:
            return
        writer.close()
        try:
            await writer.wait_closed()
        except (OSError, ConnectionError):
            pass

    async def _write(self, data: bytes) -> None:
        if self._writer is None:
            raise DeviceDisconnectedError("Not connected to adapter", operation="write")
        try:
            self._writer.write(data)
            await self._writer.drain()
        except (ConnectionError, OSError) as e:
            self.connection_lost(str(e))
            raise DeviceDisconnectedError(f"Device disconnected: {e}", operation="write", cause=e) from e

    async def _read_chunk(self) -> bytes:
        if self._reader is None:
            raise DeviceDisconnectedError("Not connected to adapter", operation="read")
        try:
            chunk = await self._reader.read(1024)
        except (ConnectionError, OSError) as e:
            self.connection_lost(str(e))
            raise CommunicationError(f"Communication error: {e}", operation="read", cause=e) from e
        if not chunk:
            self.connection_lost("socket closed by adapter")
            raise DeviceDisconnectedError("Socket closed by adapter", operation="read")
        return chunk
