from __future__ import annotations

import unittest
from types import SimpleNamespace

from elmobd.ble.discovery import alnum_serialish, looks_like_adapter_name, rank_devices

FFF0 = "0000fff0-0000-1000-8000-00805f9b34fb"


def seen(address: str, name: str, rssi: int, services=()) -> tuple:
    dev = SimpleNamespace(address=address, name=name)
    adv = SimpleNamespace(local_name=None, rssi=rssi, service_uuids=list(services))
    return dev, adv


class RankDevicesTests(unittest.TestCase):
    def test_adapters_ranked_by_signal(self) -> None:
        found = rank_devices(
            [
                seen("AA", "OBDII", -80),
                seen("BB", "Vgate iCar Pro", -50),
                seen("CC", "AirPods Pro", -30, [FFF0]),
                seen("DD", "Kitchen Speaker", -40),
            ]
        )
        self.assertEqual(["BB", "AA"], [d.address for d in found])
        self.assertEqual("ble", found[0].kind)
        self.assertEqual(-50, found[0].rssi)

    def test_known_service_beats_serial_like_name(self) -> None:
        found = rank_devices(
            [
                seen("AA", "Y013420", -40, ["0000abcd-0000-1000-8000-00805f9b34fb"]),
                seen("BB", "Unnamed", -90, [FFF0.upper()]),
            ]
        )
        self.assertEqual(["BB", "AA"], [d.address for d in found])

    def test_duplicates_and_missing_address_skipped(self) -> None:
        found = rank_devices([seen("AA", "OBDII", -80), seen("AA", "OBDII", -60), seen("", "OBDII", -10)])
        self.assertEqual(["AA"], [d.address for d in found])

    def test_target_name_and_include_all(self) -> None:
        items = [seen("AA", "OBDII", -80), seen("BB", "Garage Dongle", -70)]
        self.assertEqual(["BB"], [d.address for d in rank_devices(items, target_name="dongle")])
        self.assertEqual(["BB", "AA"], [d.address for d in rank_devices(items, include_all=True)])

    def test_extra_service_uuid(self) -> None:
        custom = "0000beef-0000-1000-8000-00805f9b34fb"
        items = [seen("AA", "Unnamed", -70, [custom])]
        self.assertEqual([], rank_devices(items))
        self.assertEqual(["AA"], [d.address for d in rank_devices(items, extra_services=[custom])])


class NameHeuristicTests(unittest.TestCase):
    def test_name_tokens(self) -> None:
        self.assertTrue(looks_like_adapter_name("OBDLink MX+"))
        self.assertTrue(looks_like_adapter_name("vLinker FS"))
        self.assertFalse(looks_like_adapter_name("Living Room TV"))

    def test_serial_like_names(self) -> None:
        self.assertTrue(alnum_serialish("Y013420"))
        self.assertFalse(alnum_serialish("ABCDEF"))
        self.assertFalse(alnum_serialish("-"))
        self.assertFalse(alnum_serialish("A1"))


if __name__ == "__main__":
    unittest.main()
