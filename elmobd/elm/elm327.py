from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, List, Optional

from ..config import command_timeout_s, connect_timeout_s
from ..protocol.message import Message
from ..state import ConnectionState, StateChannel
from ..transport.base import Transport
from .errors import (
    AdapterConnectionError,
    AdapterSetupError,
    CommandFailedError,
    CommunicationError,
    OBDError,
    OBDTimeoutError,
    ProtocolNegotiationError,
)
from .init import initialize_elm
from .protocol import OBDProtocol, get_protocol as _get_protocol, negotiate_protocol as _negotiate_protocol
from .timeout import run_with_timeout

logger = logging.getLogger(__name__)

RawLogger = Callable[[str, str, List[str]], None]


class ELM327:
    """
    Owns one transport and mediates every command on it.

    One command is in flight at a time; `send` holds the lock for the whole
    retry loop so replies can never be matched to the wrong request.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        timeout: Optional[float] = None,
        retry_delay_s: float = 0.15,
        raw_logger: Optional[RawLogger] = None,
    ):
        self.transport = transport
        self.timeout = command_timeout_s() if timeout is None else timeout
        self.retry_delay_s = retry_delay_s
        self.raw_logger = raw_logger

        self.protocol: Optional[OBDProtocol] = None
        self.elm_version: Optional[str] = None
        self.headers_on = True

        self.last_command: Optional[str] = None
        self.last_lines: List[str] = []
        self.last_error: Optional[str] = None
        self.last_duration_s: Optional[float] = None
        self.last_attempts = 0

        self._lock = asyncio.Lock()
        self.state_channel.add_listener(self._on_state)

    @property
    def state_channel(self) -> StateChannel:
        return self.transport.state_channel

    @property
    def state(self) -> ConnectionState:
        return self.state_channel.state

    @property
    def is_connected(self) -> bool:
        return self.transport.is_connected

    @property
    def is_vehicle_connected(self) -> bool:
        return self.is_connected and self.state is ConnectionState.CONNECTED_TO_VEHICLE

    def _on_state(self, old: ConnectionState, new: ConnectionState) -> None:
        if new is ConnectionState.DISCONNECTED:
            self.protocol = None

    # -----------------------------
    # Bring-up
    # -----------------------------
    async def connect_to_adapter(self, target: Optional[str] = None, timeout: Optional[float] = None) -> None:
        use_timeout = connect_timeout_s() if timeout is None else timeout
        try:
            await run_with_timeout(
                self.transport.connect(target, use_timeout),
                use_timeout,
                operation="connect",
                on_timeout=self.transport.disconnect,
            )
        except OBDTimeoutError as e:
            raise AdapterConnectionError("Timed out connecting to adapter", cause=e) from e
        except AdapterConnectionError:
            raise
        except (CommunicationError, OSError) as e:
            raise AdapterConnectionError("Adapter connection failed", cause=e) from e

    async def adapter_initialization(self) -> None:
        try:
            await initialize_elm(self)
        except AdapterSetupError:
            await self.stop_connection()
            raise

    async def setup_vehicle(self, preferred: Optional[OBDProtocol] = None) -> OBDProtocol:
        self.state_channel.publish(ConnectionState.INITIALIZING_VEHICLE)
        try:
            proto = await _negotiate_protocol(self, preferred)
        except ProtocolNegotiationError:
            await self.stop_connection()
            raise
        self.protocol = proto
        self.state_channel.publish(ConnectionState.CONNECTED_TO_VEHICLE)
        return proto

    async def stop_connection(self) -> None:
        self.protocol = None
        await self.transport.disconnect()

    # -----------------------------
    # Commands
    # -----------------------------
    async def send(
        self,
        command: str,
        retries: int = 3,
        *,
        timeout: Optional[float] = None,
        reset_on_failure: bool = True,
    ) -> List[str]:
        """
        Send one command, return the adapter's lines (prompt stripped).

        Makes max(1, retries) attempts; a timeout or transport error is
        retried after `retry_delay_s`. An empty answer is returned as is.
        When every attempt fails CommandFailedError is raised and, unless
        `reset_on_failure` is False, the session drops to disconnected.
        """
        attempts = max(1, retries)
        use_timeout = self.timeout if timeout is None else timeout
        last_exc: Optional[OBDError] = None

        async with self._lock:
            self.last_command = command
            self.last_error = None
            for attempt in range(1, attempts + 1):
                self.last_attempts = attempt
                start = time.monotonic()
                try:
                    late = await self.transport.resync(use_timeout)
                    if late is not None and self.raw_logger:
                        self.raw_logger("RX", "(late reply)", late)
                    start = time.monotonic()
                    lines = await run_with_timeout(
                        self._exchange(command),
                        use_timeout,
                        operation=command,
                        on_timeout=self.abandon_exchange,
                    )
                except (OBDTimeoutError, CommunicationError) as e:
                    last_exc = e
                    self.last_error = str(e)
                    self.last_duration_s = time.monotonic() - start
                    logger.debug("%s attempt %d/%d failed: %s", command, attempt, attempts, e)
                    if not self.transport.is_connected:
                        break
                    if attempt < attempts:
                        await asyncio.sleep(self.retry_delay_s)
                    continue

                self.last_duration_s = time.monotonic() - start
                self.last_lines = lines
                return lines

        logger.warning("%s failed after %d attempt(s): %s", command, self.last_attempts, last_exc)
        if reset_on_failure:
            await self.stop_connection()
        raise CommandFailedError(command, last_exc, attempts=self.last_attempts)

    async def _exchange(self, command: str) -> List[str]:
        if self.raw_logger:
            self.raw_logger("TX", command, [])
        await self.transport.send(command)
        lines = await self.transport.receive_lines()
        if self.raw_logger:
            self.raw_logger("RX", command, lines)
        return lines

    async def abandon_exchange(self) -> None:
        # the next send swallows the late reply before writing
        self.transport.discard_pending()

    def parse(self, lines: List[str]) -> List[Message]:
        proto = self.protocol or OBDProtocol.AUTO
        return proto.parse(lines, headers_on=self.headers_on)

    async def query(self, command: str, retries: int = 3) -> List[Message]:
        return self.parse(await self.send(command, retries))

    async def negotiate_protocol(self, preferred: Optional[OBDProtocol] = None) -> OBDProtocol:
        return await _negotiate_protocol(self, preferred)

    async def get_protocol(self) -> Optional[OBDProtocol]:
        return await _get_protocol(self)

    async def __aenter__(self) -> "ELM327":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop_connection()
