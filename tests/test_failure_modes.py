from __future__ import annotations

import unittest
from typing import Dict, List

from elmobd.dtc import DTCStatus
from elmobd.elm.errors import CommandFailedError, DecodeError, DecodeFailure, DeviceDisconnectedError
from elmobd.obd2 import ScanFailedError
from elmobd.pids import get_commands
from elmobd.state import ConnectionState
from tests.replay_transport import ReplayFixture, build_replay_service

commands = get_commands()


class FailureModeTests(unittest.IsolatedAsyncioTestCase):
    async def _service_with_steps(self, steps: List[Dict[str, object]], **meta):
        fixture = ReplayFixture(steps=steps, meta={"headers_on": False, "timeout": 0.05, **meta}, expected={})
        service, transport = await build_replay_service(fixture)
        self.addAsyncCleanup(service.disconnect)
        return service, transport

    async def test_status_no_data_raises_decode_error(self) -> None:
        service, _ = await self._service_with_steps([{"command": "0101", "lines": ["NO DATA"]}])
        with self.assertRaises(DecodeError) as ctx:
            await service.get_status()
        self.assertIs(DecodeFailure.NO_DATA, ctx.exception.reason)

    async def test_dtc_no_data_returns_empty(self) -> None:
        steps = [
            {"command": "03", "lines": ["NO DATA"]},
            {"command": "07", "lines": ["NO DATA"]},
            {"command": "0A", "lines": ["NO DATA"]},
        ]
        service, transport = await self._service_with_steps(steps)
        found = await service.scan_trouble_codes(DTCStatus.CONFIRMED | DTCStatus.PENDING | DTCStatus.PERMANENT)
        self.assertEqual({}, found)
        self.assertEqual(0, transport.remaining)

    async def test_missing_vin_is_none(self) -> None:
        service, _ = await self._service_with_steps([{"command": "0902", "lines": ["NO DATA"]}])
        self.assertIsNone(await service.get_vin())

    async def test_malformed_vin_rejected(self) -> None:
        steps = [{"command": "0902", "lines": ["7E8 06 49 02 01 41 42 43"]}]
        service, _ = await self._service_with_steps(steps, headers_on=True)
        self.assertIsNone(await service.get_vin())

    async def test_partial_status_frame(self) -> None:
        service, _ = await self._service_with_steps([{"command": "0101", "lines": ["41 01 80 07"]}])
        with self.assertRaises(DecodeError) as ctx:
            await service.get_status()
        self.assertIs(DecodeFailure.PAYLOAD_TOO_SHORT, ctx.exception.reason)

    async def test_timeout_is_retried_then_recovers(self) -> None:
        steps = [
            {"command": "010C", "error": "timeout"},
            {"command": "010C", "lines": ["41 0C 1A F8"]},
        ]
        service, _ = await self._service_with_steps(steps)
        results = await service.request_pids([commands.RPM])
        self.assertEqual(1726.0, results[commands.RPM].value)
        self.assertEqual(2, service.elm.last_attempts)

    async def test_timeouts_exhaust_and_reset_session(self) -> None:
        steps = [{"command": "010C", "error": "timeout"}] * 3
        service, _ = await self._service_with_steps(steps)
        with self.assertRaises(CommandFailedError):
            await service.request_pids([commands.RPM])
        self.assertIs(ConnectionState.DISCONNECTED, service.connection_state)

    async def test_disconnect_mid_scan_aborts(self) -> None:
        service, transport = await self._service_with_steps([{"command": "03", "error": "disconnect"}])
        with self.assertRaises(ScanFailedError) as ctx:
            await service.scan_trouble_codes()
        cause = ctx.exception.cause
        self.assertIsInstance(cause, CommandFailedError)
        self.assertIsInstance(cause.cause, DeviceDisconnectedError)
        self.assertEqual(1, cause.attempts)
        self.assertEqual(["03"], transport.sent)
        self.assertIs(ConnectionState.DISCONNECTED, service.connection_state)


if __name__ == "__main__":
    unittest.main()
