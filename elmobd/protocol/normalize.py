from __future__ import annotations

import re
from typing import Optional

HEX_ONLY_RE = re.compile(r"^[0-9A-F]+$")

# Status text the adapter prints instead of (or before) vehicle data
NOISE_PREFIXES = (
    "SEARCHING",
    "BUS INIT",
    "UNABLE TO CONNECT",
    "STOPPED",
    "NO DATA",
    "CAN ERROR",
    "BUFFER FULL",
    "BUS BUSY",
    "BUS ERROR",
    "DATA ERROR",
    "FB ERROR",
    "LV RESET",
    "ACT ALERT",
    "?",
)


def is_noise(line: str) -> bool:
    up = (line or "").strip().upper()
    if not up:
        return True

    if up == "OK":
        return True

    # version banners after ATZ / ATWS
    if up.startswith("ELM327"):
        return True

    return any(up.startswith(p) for p in NOISE_PREFIXES)


def compact_hex(line: str) -> Optional[str]:
    """
    '7E8 06 41 00' -> '7E8064100'. None when the line holds anything but
    hex digits and whitespace.
    """
    s = "".join((line or "").split()).upper()
    if not s or not HEX_ONLY_RE.match(s):
        return None
    return s


def hex_to_bytes(s: str) -> Optional[bytes]:
    if not s or len(s) % 2:
        return None
    try:
        return bytes.fromhex(s)
    except ValueError:
        return None
