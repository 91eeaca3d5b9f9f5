from __future__ import annotations

import unittest
from pathlib import Path

from tests.replay_transport import build_replay_service, load_fixture


FIXTURE_PATH = Path(__file__).resolve().parent / "fixtures" / "replay" / "obd_scan.json"


@unittest.skipIf(not FIXTURE_PATH.exists(), "Replay fixture missing: tests/fixtures/replay/obd_scan.json")
class ObdReplayTests(unittest.IsolatedAsyncioTestCase):
    async def test_obd_replay_scan(self) -> None:
        fixture = load_fixture(FIXTURE_PATH)
        if not fixture.expected:
            self.skipTest("Replay fixture missing expected outputs")

        service, transport = await build_replay_service(fixture)

        vin = await service.get_vin()
        dtcs = await service.scan_trouble_codes()
        status = await service.get_status()

        self.assertEqual(fixture.expected.get("vin"), vin)

        expected_dtcs = fixture.expected.get("dtcs", {})
        self.assertEqual(set(expected_dtcs), set(dtcs))
        for ecu, codes in expected_dtcs.items():
            self.assertEqual(sorted(codes), sorted(c.code for c in dtcs[ecu]), msg=f"dtcs[{ecu}] mismatch")

        for key, value in fixture.expected.get("status", {}).items():
            self.assertEqual(value, getattr(status, key), msg=f"status.{key} mismatch")

        for monitor, expected in fixture.expected.get("readiness", {}).items():
            test = status.monitors.get(monitor)
            self.assertIsNotNone(test, msg=f"Missing readiness monitor {monitor}")
            if test is None:
                continue
            if "available" in expected:
                self.assertEqual(expected["available"], test.available)
            if "complete" in expected:
                self.assertEqual(expected["complete"], test.complete)

        self.assertEqual(0, transport.remaining)
        await service.disconnect()


if __name__ == "__main__":
    unittest.main()
