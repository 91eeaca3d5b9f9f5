from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from bleak import BleakScanner

from ..transport.base import DeviceInfo
from ..config import ble_name, ble_scan_timeout_s, ble_service_uuid

logger = logging.getLogger(__name__)

# Adapters often advertise generic names ("Y013420") and/or custom 128-bit
# service UUIDs, so name tokens and known UART services are combined, with a
# conservative fallback for serial-number-like names that advertise a service.
ADAPTER_NAME_TOKENS = (
    "veepeak",
    "obd",
    "obd2",
    "obdii",
    "obdlink",
    "vlinker",
    "elm",
    "vgate",
    "car scanner",
    "scan tool",
    "scantool",
    "diagnostic",
    "obdcheck",
)

NOISE_NAME_TOKENS = (
    "airpods",
    "iphone",
    "watch",
    "macbook",
    "ipad",
    "beats",
    "bose",
    "sony",
    "jabra",
)

# (service, write characteristic, notify characteristic) in priority order
KNOWN_UART_PROFILES: Tuple[Tuple[str, str, str], ...] = (
    (
        "0000fff0-0000-1000-8000-00805f9b34fb",
        "0000fff2-0000-1000-8000-00805f9b34fb",
        "0000fff1-0000-1000-8000-00805f9b34fb",
    ),
    (
        "49535343-fe7d-4ae5-8fa9-9fafd205e455",
        "49535343-6daa-4d02-abf6-19569aca69fe",
        "49535343-aca3-481c-91ec-d85e28a60318",
    ),
    (
        "6e400001-b5a3-f393-e0a9-e50e24dcca9e",
        "6e400002-b5a3-f393-e0a9-e50e24dcca9e",
        "6e400003-b5a3-f393-e0a9-e50e24dcca9e",
    ),
    (
        "0000ffe0-0000-1000-8000-00805f9b34fb",
        "0000ffe1-0000-1000-8000-00805f9b34fb",
        "0000ffe1-0000-1000-8000-00805f9b34fb",
    ),
)

KNOWN_SERVICE_UUIDS = frozenset(p[0] for p in KNOWN_UART_PROFILES)


def is_noise_name(name: str) -> bool:
    n = (name or "").lower()
    return any(token in n for token in NOISE_NAME_TOKENS)


def looks_like_adapter_name(name: str) -> bool:
    n = (name or "").lower()
    return any(token in n for token in ADAPTER_NAME_TOKENS)


def alnum_serialish(name: str) -> bool:
    n = (name or "").strip()
    if not n or n == "-":
        return False
    compact = n.replace(" ", "")
    if not compact.isalnum():
        return False
    if not any(ch.isdigit() for ch in compact):
        return False
    return 4 <= len(compact) <= 14


def _device_name(dev, adv) -> str:
    return (
        (getattr(dev, "name", None) or "").strip()
        or (getattr(adv, "local_name", None) or "").strip()
    )


def _rssi(dev, adv) -> int:
    rssi = getattr(adv, "rssi", None) if adv is not None else None
    if rssi is None:
        rssi = getattr(dev, "rssi", None)
    try:
        return int(rssi) if rssi is not None else -999
    except (TypeError, ValueError):
        return -999


def _service_uuids(adv) -> List[str]:
    if adv is None:
        return []
    return [str(u).lower() for u in getattr(adv, "service_uuids", None) or []]


def rank_devices(
    items: Iterable[Tuple[object, object]],
    *,
    include_all: bool = False,
    target_name: Optional[str] = None,
    extra_services: Sequence[str] = (),
) -> List[DeviceInfo]:
    """
    (BLEDevice, AdvertisementData) pairs -> likely adapters, strongest first.
    """
    known = set(KNOWN_SERVICE_UUIDS) | {s.lower() for s in extra_services if s}
    ranked: List[Tuple[int, int, DeviceInfo]] = []
    seen = set()

    for dev, adv in items:
        address = getattr(dev, "address", None)
        if not address or address in seen:
            continue
        seen.add(address)
        name = _device_name(dev, adv) or "-"
        rssi = _rssi(dev, adv)
        info = DeviceInfo(address=address, name=name, kind="ble", rssi=rssi)

        if include_all:
            ranked.append((0, rssi, info))
            continue
        if target_name:
            if target_name.lower() in name.lower():
                ranked.append((0, rssi, info))
            continue
        if is_noise_name(name):
            continue

        svc = _service_uuids(adv)
        if looks_like_adapter_name(name) or any(u in known for u in svc):
            ranked.append((0, rssi, info))
        elif svc and alnum_serialish(name):
            ranked.append((1, rssi, info))

    ranked.sort(key=lambda x: (x[0], -x[1]))
    return [info for _, _, info in ranked]


async def scan_ble_devices(
    include_all: bool = False,
    *,
    timeout_s: Optional[float] = None,
) -> List[DeviceInfo]:
    timeout = float(timeout_s) if timeout_s is not None else ble_scan_timeout_s()
    result = await BleakScanner.discover(timeout=timeout, return_adv=True)
    logger.debug("BLE scan found %d device(s)", len(result))
    return rank_devices(
        result.values(),
        include_all=include_all,
        target_name=ble_name(),
        extra_services=[ble_service_uuid() or ""],
    )
