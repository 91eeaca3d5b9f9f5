from __future__ import annotations

import unittest

from elmobd.pids import DecodeRule, get_commands


class CatalogTests(unittest.TestCase):
    def setUp(self) -> None:
        self.commands = get_commands()

    def test_lookup_by_name_and_command(self) -> None:
        rpm = self.commands.RPM
        self.assertIs(rpm, self.commands["010C"])
        self.assertIs(rpm, self.commands["rpm"])
        self.assertIs(rpm, self.commands.get("01 0c"))
        self.assertEqual(3, rpm.bytes)
        self.assertEqual("01", rpm.mode)
        self.assertEqual(0x0C, rpm.pid)

    def test_unknown_command(self) -> None:
        self.assertNotIn("01FF", self.commands)
        self.assertIsNone(self.commands.get("NOPE"))
        with self.assertRaises(KeyError):
            self.commands["NOPE"]
        with self.assertRaises(AttributeError):
            self.commands.NOPE

    def test_names_and_commands_unique(self) -> None:
        names = [c.name for c in self.commands]
        self.assertEqual(len(names), len(set(names)))
        cmds = [c.command for c in self.commands]
        self.assertEqual(len(cmds), len(set(cmds)))

    def test_freeze_frame_mirrors_mode_01(self) -> None:
        ff = self.commands.DTC_RPM
        self.assertEqual("020C", ff.command)
        self.assertEqual("020C00", ff.request)
        self.assertEqual(self.commands.RPM.decoder, ff.decoder)

    def test_modes_without_pid(self) -> None:
        self.assertIsNone(self.commands.GET_DTC.pid)
        self.assertEqual("03", self.commands.GET_DTC.request)
        self.assertIsNone(self.commands.ATRV.mode)
        self.assertTrue(self.commands.ATRV.is_at)

    def test_pid_getters(self) -> None:
        getters = self.commands.pid_getters()
        self.assertIn(self.commands.PIDS_A, getters)
        self.assertIn(self.commands.PIDS_9A, getters)
        self.assertTrue(all(c.decoder.rule is DecodeRule.PID for c in getters))
        self.assertFalse(any(c.mode == "02" for c in getters))

    def test_by_mode(self) -> None:
        mode09 = self.commands.by_mode(9)
        self.assertIn(self.commands.VIN, mode09)
        self.assertEqual(mode09, self.commands.by_mode("09"))

    def test_fixed_widths_include_echo_byte(self) -> None:
        self.assertEqual(2, self.commands.SPEED.bytes)
        self.assertEqual(2, self.commands.COOLANT_TEMP.bytes)
        self.assertEqual(5, self.commands.PIDS_A.bytes)
        self.assertEqual(0, self.commands.VIN.bytes)


if __name__ == "__main__":
    unittest.main()
