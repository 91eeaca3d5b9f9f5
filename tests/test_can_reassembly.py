from __future__ import annotations

import unittest

from elmobd.protocol import NO_HEADER_ECU, group_messages, parse_can_lines


VIN_LINES = [
    "7E8 10 14 49 02 01 31 48 47",
    "7E8 21 43 4D 38 32 36 33 33",
    "7E8 22 41 30 30 34 33 35 32",
]


class SingleFrameTests(unittest.TestCase):
    def test_single_frame_trimmed_to_declared_length(self) -> None:
        msgs = parse_can_lines(["7E8 04 41 0C 1A F8 00 00 00"])
        self.assertEqual(1, len(msgs))
        self.assertEqual("7E8", msgs[0].ecu)
        self.assertEqual(bytes.fromhex("410C1AF8"), msgs[0].data)

    def test_garbage_line_does_not_affect_siblings(self) -> None:
        msgs = parse_can_lines(
            [
                "7E8 03 41 0D 32",
                "7E9 GARBAGE",
                "7EA 07 41",  # declares more bytes than it carries
                "7E9 03 41 0D 30",
            ]
        )
        self.assertEqual(["7E8", "7E9"], [m.ecu for m in msgs])
        self.assertEqual(bytes([0x41, 0x0D, 0x30]), msgs[1].data)

    def test_zero_length_single_frame_dropped(self) -> None:
        self.assertEqual([], parse_can_lines(["7E8 00 41 0C"]))

    def test_single_frame_longer_than_seven_dropped(self) -> None:
        msgs = parse_can_lines(["7E8 08 41 0C 1A F8 00 00 00 00", "7E9 03 41 0D 30"])
        self.assertEqual(["7E9"], [m.ecu for m in msgs])

    def test_noise_lines_yield_nothing(self) -> None:
        self.assertEqual([], parse_can_lines(["SEARCHING...", "NO DATA"]))
        self.assertEqual([], parse_can_lines(["CAN ERROR"]))


class MultiFrameTests(unittest.TestCase):
    def test_first_and_consecutive_frames_reassemble(self) -> None:
        msgs = parse_can_lines(VIN_LINES)
        self.assertEqual(1, len(msgs))
        msg = msgs[0]
        self.assertEqual(0x14, len(msg.data))
        self.assertEqual(3, msg.frames)
        self.assertEqual(b"1HGCM82633A004352", msg.data[3:])

    def test_excess_padding_truncated(self) -> None:
        msgs = parse_can_lines(
            [
                "7E8 10 08 43 03 01 33 01 01",
                "7E8 21 02 20 00 00 00 00 00",
            ]
        )
        self.assertEqual(1, len(msgs))
        self.assertEqual(bytes.fromhex("4303013301010220"), msgs[0].data)

    def test_wrong_sequence_drops_only_that_ecu(self) -> None:
        msgs = parse_can_lines(
            [
                "7E8 10 14 49 02 01 31 48 47",
                "7E9 10 0A 49 04 01 41 42 43",
                "7E8 23 43 4D 38 32 36 33 33",  # expected 21
                "7E9 21 44 45 46 47 00 00 00",
                "7E8 22 41 30 30 34 33 35 32",
            ]
        )
        self.assertEqual(1, len(msgs))
        self.assertEqual("7E9", msgs[0].ecu)
        self.assertEqual(bytes.fromhex("49040141424344454647"), msgs[0].data)

    def test_incomplete_message_not_emitted(self) -> None:
        self.assertEqual([], parse_can_lines(VIN_LINES[:2]))

    def test_interleaved_ecus_reassemble_independently(self) -> None:
        msgs = parse_can_lines(
            [
                "7E8 10 09 43 04 01 01 01 02",
                "7E9 10 09 43 04 02 01 02 02",
                "7E9 21 02 03 02 04 00 00 00",
                "7E8 21 01 03 01 04 00 00 00",
            ]
        )
        grouped = group_messages(msgs)
        self.assertEqual({"7E8", "7E9"}, set(grouped))
        self.assertEqual(bytes.fromhex("430401010102010301"), grouped["7E8"][0].data[:9])
        self.assertEqual(9, len(grouped["7E9"][0].data))

    def test_sequence_number_wraps_after_f(self) -> None:
        total = 6 + 7 * 16
        payload = bytes(range(total))
        lines = [f"7E8 10 {total:02X} " + " ".join(f"{b:02X}" for b in payload[:6])]
        seq = 1
        for i in range(6, total, 7):
            chunk = payload[i : i + 7]
            lines.append(f"7E8 2{seq:X} " + " ".join(f"{b:02X}" for b in chunk))
            seq = (seq + 1) & 0x0F
        msgs = parse_can_lines(lines)
        self.assertEqual(1, len(msgs))
        self.assertEqual(payload, msgs[0].data)

    def test_flow_control_frames_ignored(self) -> None:
        msgs = parse_can_lines(["7E0 30 00 00 00 00 00 00 00", "7E8 03 41 0D 32"])
        self.assertEqual(1, len(msgs))
        self.assertEqual("7E8", msgs[0].ecu)


class TwentyNineBitTests(unittest.TestCase):
    def test_29bit_single_frame(self) -> None:
        msgs = parse_can_lines(["18 DA F1 10 03 41 0D 32"], id_bits=29)
        self.assertEqual(1, len(msgs))
        self.assertEqual("18DAF110", msgs[0].ecu)
        self.assertEqual(bytes([0x41, 0x0D, 0x32]), msgs[0].data)

    def test_29bit_multi_frame(self) -> None:
        lines = ["18 DA F1 10 " + ln[4:] for ln in VIN_LINES]
        msgs = parse_can_lines(lines, id_bits=29)
        self.assertEqual(1, len(msgs))
        self.assertEqual(b"1HGCM82633A004352", msgs[0].data[3:])


class HeaderlessTests(unittest.TestCase):
    def test_bare_data_line(self) -> None:
        msgs = parse_can_lines(["41 0C 1A F8"])
        self.assertEqual(1, len(msgs))
        self.assertEqual(NO_HEADER_ECU, msgs[0].ecu)
        self.assertEqual(bytes.fromhex("410C1AF8"), msgs[0].data)

    def test_indexed_layout(self) -> None:
        msgs = parse_can_lines(
            [
                "014",
                "0: 49 02 01 31 48 47",
                "1: 43 4D 38 32 36 33 33",
                "2: 41 30 30 34 33 35 32",
            ]
        )
        self.assertEqual(1, len(msgs))
        self.assertEqual(NO_HEADER_ECU, msgs[0].ecu)
        self.assertEqual(b"1HGCM82633A004352", msgs[0].data[3:])

    def test_one_byte_reply_is_data(self) -> None:
        msgs = parse_can_lines(["44"])
        self.assertEqual(1, len(msgs))
        self.assertEqual(NO_HEADER_ECU, msgs[0].ecu)
        self.assertEqual(bytes([0x44]), msgs[0].data)

    def test_short_line_before_indexed_frames_is_length(self) -> None:
        msgs = parse_can_lines(["44", "00A", "0: 49 04 01 41 42 43", "1: 44 45 46 47 00 00 00"])
        self.assertEqual(2, len(msgs))
        self.assertEqual(bytes([0x44]), msgs[0].data)
        self.assertEqual(bytes.fromhex("49040141424344454647"), msgs[1].data)


if __name__ == "__main__":
    unittest.main()
