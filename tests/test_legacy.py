from __future__ import annotations

import unittest

from elmobd.elm.protocol import OBDProtocol
from elmobd.protocol import NO_HEADER_ECU, parse_legacy_lines


class LegacyParsingTests(unittest.TestCase):
    def test_header_and_checksum_stripped(self) -> None:
        msgs = parse_legacy_lines(["48 6B 10 41 0C 1A F8 C4"])
        self.assertEqual(1, len(msgs))
        self.assertEqual("10", msgs[0].ecu)
        self.assertEqual(bytes.fromhex("410C1AF8"), msgs[0].data)

    def test_one_message_per_line_and_ecu(self) -> None:
        msgs = parse_legacy_lines(
            [
                "48 6B 10 43 01 33 00 00 00 00 AA",
                "48 6B 18 43 00 00 00 00 00 00 BB",
            ]
        )
        self.assertEqual(["10", "18"], [m.ecu for m in msgs])
        self.assertEqual(bytes.fromhex("43013300000000"), msgs[0].data)

    def test_short_and_malformed_lines_dropped(self) -> None:
        msgs = parse_legacy_lines(
            [
                "48 6B 10 C4",
                "BUS INIT: ...OK",
                "48 6B XX 41 0D 32 00",
                "48 6B 10 41 0D 32 F0",
            ]
        )
        self.assertEqual(1, len(msgs))
        self.assertEqual(bytes([0x41, 0x0D, 0x32]), msgs[0].data)

    def test_headers_off_keeps_whole_line(self) -> None:
        msgs = parse_legacy_lines(["41 0D 32"], headers_on=False)
        self.assertEqual(1, len(msgs))
        self.assertEqual(NO_HEADER_ECU, msgs[0].ecu)
        self.assertEqual(bytes([0x41, 0x0D, 0x32]), msgs[0].data)

    def test_protocol_dispatches_to_legacy_parser(self) -> None:
        msgs = OBDProtocol.ISO_9141_2.parse(["48 6B 10 41 0D 32 F0"])
        self.assertEqual("10", msgs[0].ecu)
        msgs = OBDProtocol.ISO_15765_4_11BIT_500K.parse(["7E8 03 41 0D 32"])
        self.assertEqual("7E8", msgs[0].ecu)


if __name__ == "__main__":
    unittest.main()
