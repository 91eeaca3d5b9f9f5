from __future__ import annotations

import os
import unittest
from pathlib import Path
from unittest import mock

from elmobd import config
from elmobd.config import ConnectionType


class ConfigTests(unittest.TestCase):
    def test_defaults(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True):
            self.assertIs(ConnectionType.BLUETOOTH, config.connection_type())
            self.assertEqual("192.168.0.10", config.wifi_host())
            self.assertEqual(35000, config.wifi_port())
            self.assertEqual(38400, config.serial_baud())
            self.assertIsNone(config.serial_port())
            self.assertEqual(3.0, config.command_timeout_s())

    def test_environment_overrides(self) -> None:
        env = {
            "OBD_CONNECTION_TYPE": " WiFi ",
            "OBD_WIFI_HOST": "10.0.0.5",
            "OBD_WIFI_PORT": "23",
            "OBD_COMMAND_TIMEOUT": "1.5",
            "OBD_RAW_LOG": "/tmp/elm/raw.log",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            self.assertIs(ConnectionType.WIFI, config.connection_type())
            self.assertEqual("10.0.0.5", config.wifi_host())
            self.assertEqual(23, config.wifi_port())
            self.assertEqual(1.5, config.command_timeout_s())
            self.assertEqual(Path("/tmp/elm/raw.log"), config.raw_log_path())

    def test_bad_values_fall_back(self) -> None:
        env = {"OBD_CONNECTION_TYPE": "carrier-pigeon", "OBD_WIFI_PORT": "abc", "OBD_POLL_INTERVAL": "fast"}
        with mock.patch.dict(os.environ, env, clear=True):
            self.assertIs(ConnectionType.BLUETOOTH, config.connection_type())
            self.assertEqual(35000, config.wifi_port())
            self.assertEqual(0.3, config.poll_interval_s())

    def test_blank_strings_are_unset(self) -> None:
        with mock.patch.dict(os.environ, {"OBD_SERIAL_PORT": "   ", "OBD_BLE_NAME": ""}, clear=True):
            self.assertIsNone(config.serial_port())
            self.assertIsNone(config.ble_name())


if __name__ == "__main__":
    unittest.main()
