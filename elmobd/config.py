"""
Environment configuration.

All settings come from OBD_* environment variables; numbers that do not
parse fall back to their defaults.
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Optional


class ConnectionType(str, Enum):
    BLUETOOTH = "bluetooth"
    WIFI = "wifi"
    SERIAL = "serial"
    DEMO = "demo"


def _env_str(name: str) -> Optional[str]:
    value = os.environ.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, default))
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, default))
    except ValueError:
        return default


def connection_type() -> ConnectionType:
    raw = (_env_str("OBD_CONNECTION_TYPE") or ConnectionType.BLUETOOTH.value).lower()
    try:
        return ConnectionType(raw)
    except ValueError:
        return ConnectionType.BLUETOOTH


def wifi_host() -> str:
    return _env_str("OBD_WIFI_HOST") or "192.168.0.10"


def wifi_port() -> int:
    return _env_int("OBD_WIFI_PORT", 35000)


def serial_port() -> Optional[str]:
    return _env_str("OBD_SERIAL_PORT")


def serial_baud() -> int:
    return _env_int("OBD_SERIAL_BAUD", 38400)


def command_timeout_s() -> float:
    return _env_float("OBD_COMMAND_TIMEOUT", 3.0)


def connect_timeout_s() -> float:
    return _env_float("OBD_CONNECT_TIMEOUT", 7.0)


def poll_interval_s() -> float:
    return _env_float("OBD_POLL_INTERVAL", 0.3)


def raw_log_path() -> Path:
    custom = _env_str("OBD_RAW_LOG")
    if custom:
        return Path(custom).expanduser()
    return Path.home() / ".elmobd" / "logs" / "obd_raw.log"


# -- Bluetooth LE --------------------------------------------------------

def ble_address() -> Optional[str]:
    return _env_str("OBD_BLE_ADDRESS")


def ble_name() -> Optional[str]:
    return _env_str("OBD_BLE_NAME")


def ble_service_uuid() -> Optional[str]:
    return _env_str("OBD_BLE_SERVICE_UUID")


def ble_rx_uuid() -> Optional[str]:
    return _env_str("OBD_BLE_RX_UUID")


def ble_tx_uuid() -> Optional[str]:
    return _env_str("OBD_BLE_TX_UUID")


def ble_scan_timeout_s() -> float:
    return _env_float("OBD_BLE_SCAN_TIMEOUT", 6.0)
