from __future__ import annotations

import unittest

from elmobd.dtc import (
    DTCStatus,
    TroubleCode,
    decode_dtc_bytes,
    decode_dtc_hex,
    decode_dtc_list,
    decode_single_dtc,
    decode_status,
)
from elmobd.elm.errors import DecodeError, DecodeFailure


class DtcCodecTests(unittest.TestCase):
    def test_known_pairs(self) -> None:
        self.assertEqual("P0101", decode_dtc_bytes(0x01, 0x01))
        self.assertEqual("P0118", decode_dtc_hex("0118"))
        self.assertEqual("C0300", decode_dtc_bytes(0x43, 0x00))
        self.assertEqual("B1234", decode_dtc_bytes(0x92, 0x34))
        self.assertEqual("U3FFF", decode_dtc_bytes(0xFF, 0xFF))

    def test_zero_pair_is_not_a_code(self) -> None:
        self.assertIsNone(decode_dtc_bytes(0, 0))
        codes = decode_dtc_list(bytes.fromhex("010100000133"))
        self.assertEqual(["P0101", "P0133"], [c.code for c in codes])

    def test_leading_count_byte_skipped(self) -> None:
        codes = decode_dtc_list(bytes.fromhex("0201330101"))
        self.assertEqual(["P0133", "P0101"], [c.code for c in codes])

    def test_status_attached(self) -> None:
        codes = decode_dtc_list(bytes.fromhex("0101"), DTCStatus.PENDING)
        self.assertEqual([TroubleCode("P0101", DTCStatus.PENDING)], codes)
        self.assertEqual("powertrain", codes[0].system.lower())

    def test_empty_payload(self) -> None:
        self.assertEqual([], decode_dtc_list(b""))
        self.assertEqual([], decode_dtc_list(b"\x00"))

    def test_single_dtc(self) -> None:
        self.assertEqual("P0420", decode_single_dtc(bytes.fromhex("0420")).code)
        self.assertIsNone(decode_single_dtc(b"\x00\x00"))
        with self.assertRaises(DecodeError) as ctx:
            decode_single_dtc(b"\x04")
        self.assertIs(DecodeFailure.PAYLOAD_TOO_SHORT, ctx.exception.reason)


class StatusTests(unittest.TestCase):
    def test_mil_and_count(self) -> None:
        status = decode_status(bytes.fromhex("82076504"))
        self.assertTrue(status.mil)
        self.assertEqual(2, status.dtc_count)
        self.assertEqual("spark", status.ignition_type)

    def test_spark_monitors(self) -> None:
        status = decode_status(bytes.fromhex("82076504"))
        cat = status.monitors["CATALYST_MONITORING"]
        self.assertTrue(cat.available)
        self.assertTrue(cat.complete)
        evap = status.monitors["EVAPORATIVE_SYSTEM_MONITORING"]
        self.assertTrue(evap.available)
        self.assertFalse(evap.complete)
        self.assertFalse(status.monitors["EGR_VVT_SYSTEM_MONITORING"].available)
        self.assertEqual(["EVAPORATIVE_SYSTEM_MONITORING"], status.incomplete_monitors)

    def test_base_monitor_incomplete(self) -> None:
        status = decode_status(bytes.fromhex("00170000"))
        misfire = status.monitors["MISFIRE_MONITORING"]
        self.assertTrue(misfire.available)
        self.assertFalse(misfire.complete)
        self.assertFalse(status.mil)

    def test_compression_ignition(self) -> None:
        status = decode_status(bytes.fromhex("00080100"))
        self.assertEqual("compression", status.ignition_type)
        self.assertIn("NMHC_CATALYST_MONITORING", status.monitors)
        self.assertNotIn("CATALYST_MONITORING", status.monitors)

    def test_short_payload(self) -> None:
        with self.assertRaises(DecodeError):
            decode_status(b"\x82\x07")


if __name__ == "__main__":
    unittest.main()
