from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Optional

from bleak import BleakClient, BleakScanner
from bleak.exc import BleakError

from ..config import ble_address, ble_rx_uuid, ble_service_uuid, ble_tx_uuid
from ..elm.errors import AdapterConnectionError, CommunicationError, DeviceDisconnectedError
from ..transport.base import DeviceInfo, Transport
from .discovery import KNOWN_UART_PROFILES, scan_ble_devices

logger = logging.getLogger(__name__)


class BleTransport(Transport):
    """
    BLE UART adapters (Veepeak, Vgate, OBDLink CX, ...).

    Writes go to the "RX" characteristic, replies arrive as notifications on
    the "TX" characteristic and are queued until the prompt shows up.
    """

    kind = "ble"

    def __init__(self, address: Optional[str] = None, *, include_all: bool = False):
        super().__init__()
        self.address = address or ble_address()
        self.include_all = include_all
        self._client: Optional[BleakClient] = None
        self._rx_uuid: Optional[str] = ble_rx_uuid()
        self._tx_uuid: Optional[str] = ble_tx_uuid()
        self._service_uuid: Optional[str] = ble_service_uuid()
        self._incoming: "asyncio.Queue[bytes]" = asyncio.Queue()

    async def _open(self, target: Optional[str], timeout: float) -> None:
        address = target or self.address
        if not address:
            found = await scan_ble_devices(self.include_all, timeout_s=timeout)
            if not found:
                raise AdapterConnectionError("No BLE OBD adapter found")
            address = found[0].address
            logger.info("using BLE adapter %s", found[0])
        self.address = address

        try:
            device = await BleakScanner.find_device_by_address(address, timeout=timeout)
        except BleakError as e:
            raise AdapterConnectionError(f"BLE scan failed for {address}", cause=e) from e
        if device is None:
            raise AdapterConnectionError(
                f"BLE device {address} not found. If it is paired in the system "
                "Bluetooth settings, disconnect it there and try again."
            )

        self._incoming = asyncio.Queue()
        self._client = BleakClient(device, disconnected_callback=self._on_disconnect)
        try:
            await self._client.connect(timeout=timeout)
            self._select_characteristics()
            if not self._rx_uuid or not self._tx_uuid:
                raise AdapterConnectionError("No writable/notify characteristic pair on adapter")
            await self._client.start_notify(self._tx_uuid, self._on_notify)
        except BleakError as e:
            await self._close()
            raise AdapterConnectionError(f"BLE connect to {address} failed", cause=e) from e

    async def _close(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        try:
            if self._tx_uuid and client.is_connected:
                await client.stop_notify(self._tx_uuid)
        except BleakError as e:
            logger.debug("stop_notify failed: %s", e)
        try:
            await client.disconnect()
        except BleakError as e:
            logger.debug("BLE disconnect failed: %s", e)

    def discard_pending(self) -> None:
        super().discard_pending()
        while not self._incoming.empty():
            self._incoming.get_nowait()

    async def _write(self, data: bytes) -> None:
        if self._client is None or not self._client.is_connected:
            raise DeviceDisconnectedError("BLE adapter not connected", operation="write")
        try:
            await self._client.write_gatt_char(self._rx_uuid, data, response=False)
        except BleakError as e:
            raise CommunicationError(f"BLE write failed: {e}", operation="write", cause=e) from e

    async def _read_chunk(self) -> bytes:
        chunk = await self._incoming.get()
        if not chunk:
            raise DeviceDisconnectedError("BLE adapter disconnected", operation="read")
        return chunk

    async def discover_devices(self) -> AsyncIterator[DeviceInfo]:
        for info in await scan_ble_devices(self.include_all):
            yield info

    def _select_characteristics(self) -> None:
        if self._rx_uuid and self._tx_uuid:
            return
        services = self._client.services
        service_filter = (self._service_uuid or "").lower()
        by_uuid = {s.uuid.lower(): s for s in services}

        for svc_uuid, rx_known, tx_known in KNOWN_UART_PROFILES:
            if service_filter and svc_uuid != service_filter:
                continue
            service = by_uuid.get(svc_uuid)
            if not service:
                continue
            chars = {ch.uuid.lower() for ch in service.characteristics}
            if rx_known in chars and tx_known in chars:
                self._rx_uuid = self._rx_uuid or rx_known
                self._tx_uuid = self._tx_uuid or tx_known
                return

        # any service with a write + notify pair; honour the filter first
        candidates = [s for s in services if not service_filter or s.uuid.lower() == service_filter]
        for service in candidates or list(services):
            write_chars = []
            notify_chars = []
            for ch in service.characteristics:
                props = {p.lower() for p in ch.properties}
                if "write" in props or "write-without-response" in props:
                    write_chars.append(ch.uuid)
                if "notify" in props or "indicate" in props:
                    notify_chars.append(ch.uuid)
            if write_chars and notify_chars:
                self._rx_uuid = self._rx_uuid or write_chars[0]
                self._tx_uuid = self._tx_uuid or notify_chars[0]
                return

    def _on_notify(self, _sender, data: bytearray) -> None:
        if data:
            self._incoming.put_nowait(bytes(data))

    def _on_disconnect(self, _client: BleakClient) -> None:
        # wake a pending read; empty chunk means EOF
        self._incoming.put_nowait(b"")
        self.connection_lost("BLE link dropped")
