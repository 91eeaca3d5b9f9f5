from __future__ import annotations

import asyncio
from typing import AsyncIterator, List, Optional

import serial
from serial.tools import list_ports

from ..elm.errors import AdapterConnectionError, CommunicationError, DeviceDisconnectedError
from .base import DeviceInfo, Transport

BAUD_RATES = [38400, 9600, 115200, 57600, 19200]

# USB-serial bridges commonly used by ELM327 clones
_USB_HINTS = ("usb", "serial", "ch340", "cp210", "ftdi", "pl2303", "elm", "obd")


def find_ports() -> List[str]:
    ports = []
    for p in list_ports.comports():
        text = f"{p.device} {p.description or ''} {p.manufacturer or ''}".lower()
        if any(h in text for h in _USB_HINTS):
            ports.append(p.device)
    return ports


class SerialTransport(Transport):
    """USB / classic Bluetooth SPP adapters through pyserial."""

    kind = "serial"
    poll_interval_s = 0.01

    def __init__(self, port: Optional[str] = None, baudrate: int = 38400):
        super().__init__()
        self.port = port
        self.baudrate = baudrate
        self.connection: Optional[serial.Serial] = None

    async def _open(self, target: Optional[str], timeout: float) -> None:
        port = target or self.port
        if not port:
            ports = find_ports()
            if not ports:
                raise AdapterConnectionError("No ELM327 adapter found. Check USB connection.")
            port = ports[0]
        self.port = port
        try:
            self.connection = await asyncio.to_thread(
                serial.Serial,
                port=port,
                baudrate=self.baudrate,
                timeout=0,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
            )
        except (OSError, serial.SerialException) as e:
            raise AdapterConnectionError(f"Serial port error on {port}", cause=e) from e
        await asyncio.sleep(0.2)

    async def _close(self) -> None:
        conn, self.connection = self.connection, None
        if conn is not None:
            try:
                conn.close()
            except (OSError, serial.SerialException):
                pass

    def discard_pending(self) -> None:
        super().discard_pending()
        if self.connection is not None:
            try:
                self.connection.reset_input_buffer()
            except (OSError, serial.SerialException) as e:
                self._raise_io(e, "reset")

    async def _write(self, data: bytes) -> None:
        conn = self._require()
        try:
            await asyncio.to_thread(conn.write, data)
            await asyncio.to_thread(conn.flush)
        except (OSError, serial.SerialException) as e:
            self._raise_io(e, "write")

    async def _read_chunk(self) -> bytes:
        conn = self._require()
        while True:
            try:
                n = conn.in_waiting
                if n:
                    return conn.read(n)
            except (OSError, serial.SerialException) as e:
                self._raise_io(e, "read")
            await asyncio.sleep(self.poll_interval_s)

    async def discover_devices(self) -> AsyncIterator[DeviceInfo]:
        for p in await asyncio.to_thread(list_ports.comports):
            yield DeviceInfo(address=p.device, name=p.description or "-", kind=self.kind)

    def _require(self) -> serial.Serial:
        if self.connection is None:
            raise DeviceDisconnectedError("Not connected to ELM327")
        return self.connection

    def _raise_io(self, e: Exception, operation: str) -> None:
        error_str = str(e).lower()
        if "device not configured" in error_str or "disconnected" in error_str or "closed" in error_str:
            self.connection_lost(str(e))
            raise DeviceDisconnectedError(f"Device disconnected: {e}", operation=operation, cause=e) from e
        raise CommunicationError(f"Communication error: {e}", operation=operation, cause=e) from e
