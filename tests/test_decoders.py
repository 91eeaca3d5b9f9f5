from __future__ import annotations

import unittest

from elmobd.elm.errors import DecodeError, DecodeFailure
from elmobd.pids import Decoder, DecodeRule, MeasurementSystem, Unit
from elmobd.pids.decoders import uas


class DecoderRuleTests(unittest.TestCase):
    def test_rpm_and_speed(self) -> None:
        rpm = uas(0x07).decode(bytes.fromhex("1AF8"))
        self.assertEqual(1726.0, rpm.value)
        self.assertIs(Unit.RPM, rpm.unit)
        speed = uas(0x09).decode(bytes([0x32]))
        self.assertEqual(50.0, speed.value)
        self.assertIs(Unit.KPH, speed.unit)

    def test_temperature_offset(self) -> None:
        temp = Decoder(DecodeRule.TEMP).decode(bytes([0x7B]))
        self.assertEqual(83.0, temp.value)
        self.assertIs(Unit.CELSIUS, temp.unit)

    def test_percent(self) -> None:
        self.assertAlmostEqual(100.0, Decoder(DecodeRule.PERCENT).decode(bytes([0xFF])).value)
        self.assertAlmostEqual(0.0, Decoder(DecodeRule.PERCENT_CENTERED).decode(bytes([0x80])).value)

    def test_supported_pid_bitmap(self) -> None:
        offsets = Decoder(DecodeRule.PID).decode(bytes.fromhex("BE1FA813"))
        self.assertIn(1, offsets)
        self.assertIn(0x0C, offsets)
        self.assertIn(0x20, offsets)
        self.assertNotIn(2, offsets)

    def test_lookup_out_of_domain(self) -> None:
        with self.assertRaises(DecodeError) as ctx:
            Decoder(DecodeRule.FUEL_TYPE).decode(bytes([0xFE]))
        self.assertIs(DecodeFailure.OUT_OF_DOMAIN, ctx.exception.reason)
        self.assertEqual("Gasoline", Decoder(DecodeRule.FUEL_TYPE).decode(bytes([0x01])))

    def test_short_payload(self) -> None:
        with self.assertRaises(DecodeError) as ctx:
            Decoder(DecodeRule.FUEL_RATE).decode(bytes([0x01]))
        self.assertIs(DecodeFailure.PAYLOAD_TOO_SHORT, ctx.exception.reason)

    def test_none_rule_is_unsupported(self) -> None:
        with self.assertRaises(DecodeError) as ctx:
            Decoder(DecodeRule.NONE).decode(b"\x00")
        self.assertIs(DecodeFailure.UNSUPPORTED_DECODER, ctx.exception.reason)

    def test_unknown_uas_id(self) -> None:
        with self.assertRaises(DecodeError) as ctx:
            uas(0x7F).decode(b"\x00\x01")
        self.assertIs(DecodeFailure.UNSUPPORTED_DECODER, ctx.exception.reason)

    def test_decode_is_deterministic(self) -> None:
        payload = bytes.fromhex("1AF8")
        self.assertEqual(uas(0x07).decode(payload), uas(0x07).decode(payload))

    def test_encoded_string_skips_count_and_padding(self) -> None:
        text = Decoder(DecodeRule.ENCODED_STRING).decode(b"\x01\x00\x00JM1234567890\x00\x00")
        self.assertEqual("JM1234567890", text)
        with self.assertRaises(DecodeError):
            Decoder(DecodeRule.ENCODED_STRING).decode(b"\x01\x00\x00")

    def test_cvn(self) -> None:
        self.assertEqual("12345678", Decoder(DecodeRule.CVN).decode(bytes.fromhex("0112345678")))

    def test_monitor_blocks(self) -> None:
        # MID 01, TID 01, UAS 0x0A (0.122 mV), value/min/max
        block = bytes.fromhex("01010A" "0BB8" "0000" "FFFF")
        monitor = Decoder(DecodeRule.MONITOR).decode(block + b"\x00")
        self.assertEqual(1, len(monitor))
        test = monitor[0x01]
        self.assertEqual("RTL_THRESHOLD_VOLTAGE", test.name)
        self.assertAlmostEqual(3000 * 0.122, test.value.value)
        self.assertTrue(test.passed)


class MeasurementSystemTests(unittest.TestCase):
    def test_imperial_conversions(self) -> None:
        speed = uas(0x09).decode(bytes([100]), MeasurementSystem.IMPERIAL)
        self.assertIs(Unit.MPH, speed.unit)
        self.assertAlmostEqual(62.1371, speed.value, places=3)

        temp = Decoder(DecodeRule.TEMP).decode(bytes([140]), MeasurementSystem.IMPERIAL)
        self.assertIs(Unit.FAHRENHEIT, temp.unit)
        self.assertAlmostEqual(212.0, temp.value)

    def test_units_without_imperial_form_unchanged(self) -> None:
        rpm = uas(0x07).decode(bytes.fromhex("1AF8"), MeasurementSystem.IMPERIAL)
        self.assertIs(Unit.RPM, rpm.unit)
        self.assertEqual(1726.0, rpm.value)


if __name__ == "__main__":
    unittest.main()
