from __future__ import annotations

import logging
from typing import AsyncIterator, Callable, List, Optional, Union

from .. import config
from ..config import ConnectionType
from ..pid_list import PIDRequestList
from ..pids.units import MeasurementSystem
from ..transport.base import DeviceInfo, Transport
from ..transport.mock import MockTransport
from ..transport.tcp import TcpTransport
from .base import BaseScanner
from .dtcs import DtcMixin
from .pids import PidMixin
from .updates import UpdatesMixin
from .vehicle_info import VehicleInfoMixin

logger = logging.getLogger(__name__)


def create_transport(kind: Union[ConnectionType, str]) -> Transport:
    """Fresh transport for a connection type, configured from the environment."""
    kind = ConnectionType(kind)
    if kind is ConnectionType.DEMO:
        return MockTransport()
    if kind is ConnectionType.WIFI:
        return TcpTransport(config.wifi_host(), config.wifi_port())
    if kind is ConnectionType.SERIAL:
        from ..transport.serial import SerialTransport

        return SerialTransport(config.serial_port(), config.serial_baud())
    from ..ble.transport import BleTransport

    return BleTransport(config.ble_address())


class OBDService(
    VehicleInfoMixin,
    PidMixin,
    DtcMixin,
    UpdatesMixin,
    BaseScanner,
):
    """
    Application-facing OBD-II session.

        service = OBDService(ConnectionType.DEMO)
        info = await service.connect()
        results = await service.request_pids([commands.RPM, commands.SPEED])
    """

    def __init__(
        self,
        connection_type: Union[ConnectionType, str, None] = None,
        *,
        transport: Optional[Transport] = None,
        raw_logger: Optional[Callable[[str, str, List[str]], None]] = None,
        system: MeasurementSystem = MeasurementSystem.METRIC,
        timeout: Optional[float] = None,
    ):
        self.connection_type = ConnectionType(connection_type) if connection_type else config.connection_type()
        super().__init__(
            transport or create_transport(self.connection_type),
            raw_logger=raw_logger,
            system=system,
            timeout=timeout,
        )
        self.pid_list = PIDRequestList()

    async def switch_connection_type(
        self,
        kind: Union[ConnectionType, str],
        *,
        transport: Optional[Transport] = None,
    ) -> None:
        """Tear down the current session and rebuild the controller over a new transport."""
        await self.disconnect()
        old = self.elm.transport
        old.state_channel.remove_listener(self._forward_state)
        old.state_channel.close()

        self.connection_type = ConnectionType(kind)
        self.info = None
        self.elm = self._make_controller(transport or create_transport(self.connection_type))
        logger.info("connection type switched to %s", self.connection_type.value)

    async def scan_devices(self) -> AsyncIterator[DeviceInfo]:
        async for device in self.elm.transport.discover_devices():
            yield device
