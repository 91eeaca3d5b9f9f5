from __future__ import annotations

import logging
import time
from typing import Any, Callable, List, Optional

from ..elm import ELM327, OBDProtocol
from ..elm.errors import DecodeError, DecodeFailure, NotConnectedError, OBDError
from ..pids.batch import decode_message, response_mode
from ..pids.catalog import OBDCommand
from ..pids.units import MeasurementSystem
from ..protocol.message import Message
from ..state import ConnectionState, StateChannel
from ..transport.base import Transport
from .models import OBDInfo

logger = logging.getLogger(__name__)

RawLogger = Callable[[str, str, List[str]], None]


class ScannerError(OBDError):
    def __init__(self, message: str, *, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause

    def __str__(self) -> str:
        base = super().__str__()
        if self.cause is not None:
            base += f": {self.cause}"
        return base


class ScanFailedError(ScannerError):
    pass


class ClearFailedError(ScannerError):
    pass


class BaseScanner:
    """
    Base for OBDService:
    - connection lifecycle over one ELM327 controller
    - service-level state channel that survives controller swaps
    - query helper returning replies ordered by ECU preference
    """

    ECU_PREFER = [
        "7E8", "7E0", "7E9", "7E1", "7EA", "7E2", "7EB", "7E3",
        "7EC", "7E4", "7ED", "7E5", "7EE", "7E6", "7EF", "7E7",
        "18DAF110", "18DAF118", "18DAF111", "18DAF119",
    ]

    def __init__(
        self,
        transport: Transport,
        *,
        raw_logger: Optional[RawLogger] = None,
        system: MeasurementSystem = MeasurementSystem.METRIC,
        timeout: Optional[float] = None,
    ):
        self.raw_logger = raw_logger
        self.system = system
        self.timeout = timeout
        self.state_channel = StateChannel()
        self.info: Optional[OBDInfo] = None
        self.elm = self._make_controller(transport)

    def _make_controller(self, transport: Transport) -> ELM327:
        elm = ELM327(transport, timeout=self.timeout, raw_logger=self.raw_logger)
        transport.state_channel.add_listener(self._forward_state)
        return elm

    def _forward_state(self, old: ConnectionState, new: ConnectionState) -> None:
        self.state_channel.publish(new)

    @property
    def connection_state(self) -> ConnectionState:
        return self.state_channel.state

    @property
    def is_connected(self) -> bool:
        return self.elm.is_vehicle_connected

    def _check_connected(self) -> None:
        if not self.is_connected:
            raise NotConnectedError("Not connected to vehicle")

    def _check_adapter(self) -> None:
        if not self.elm.is_connected:
            raise NotConnectedError("Not connected to adapter")

    # -----------------------------
    # Connection
    # -----------------------------
    async def connect(
        self,
        preferred: Optional[OBDProtocol] = None,
        *,
        target: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> OBDInfo:
        start = time.monotonic()
        logger.info("connecting (timeout=%ss)", timeout if timeout is not None else "default")
        try:
            await self.elm.connect_to_adapter(target, timeout)
            await self.elm.adapter_initialization()
            protocol = await self.elm.setup_vehicle(preferred)
        except OBDError as e:
            logger.error("connection failed after %.2fs: %s", time.monotonic() - start, e)
            raise

        self.info = await self._collect_info(protocol)
        logger.info("connected in %.2fs: %s", time.monotonic() - start, self.info.summary())
        return self.info

    async def _collect_info(self, protocol: OBDProtocol) -> OBDInfo:
        # VehicleInfoMixin fills in ECUs, PIDs and VIN
        return OBDInfo(protocol=protocol, elm_version=self.elm.elm_version)

    async def disconnect(self) -> None:
        await self.elm.stop_connection()

    # -----------------------------
    # Query helpers
    # -----------------------------
    def _order_by_ecu(self, messages: List[Message]) -> List[Message]:
        rank = {ecu: i for i, ecu in enumerate(self.ECU_PREFER)}
        return sorted(messages, key=lambda m: rank.get(m.ecu, len(rank)))

    async def _query(self, cmd: OBDCommand, retries: int = 3) -> List[Message]:
        """Replies to `cmd` from every ECU, preferred ECUs first."""
        self._check_connected()
        messages = await self.elm.query(cmd.request, retries)
        expected = response_mode(cmd)
        if expected is not None:
            messages = [m for m in messages if m.mode == expected]
        return self._order_by_ecu(messages)

    async def request(self, cmd: OBDCommand, *, system: Optional[MeasurementSystem] = None) -> Any:
        """Send one catalog command and decode the preferred ECU's reply."""
        messages = await self._query(cmd)
        if not messages:
            raise DecodeError(DecodeFailure.NO_DATA, command=cmd.command)
        return decode_message(cmd, messages[0], system or self.system)

    async def send_raw(self, command: str, retries: int = 3) -> List[str]:
        """Pass-through: adapter lines for any command, AT directives included."""
        self._check_adapter()
        return await self.elm.send(command.strip().upper(), retries)

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()
