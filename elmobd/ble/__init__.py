# elmobd/ble/__init__.py
from .transport import BleTransport
from .discovery import rank_devices, scan_ble_devices

__all__ = ["BleTransport", "rank_devices", "scan_ble_devices"]
