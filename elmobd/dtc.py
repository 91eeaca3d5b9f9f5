"""
DTC (Diagnostic Trouble Code) codec
===================================
Bit-unpacks two-byte trouble-code words into standard codes, and the
mode 01 PID 01/41 status words into MIL state and monitor readiness.

    byte A: [ss dd nnnn]   ss = system (P/C/B/U), dd = first digit (0-3)
    byte B: [nnnn nnnn]

    0x01 0x01 -> P0101
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Flag, auto
from typing import Dict, List, Optional

from .elm.errors import DecodeError, DecodeFailure

DTC_PREFIXES = ("P", "C", "B", "U")

# response mode byte -> request mode
DTC_RESPONSE_MODES = {0x43: "03", 0x47: "07", 0x4A: "0A"}


class DTCStatus(Flag):
    NONE = 0
    PENDING = auto()
    CONFIRMED = auto()
    PERMANENT = auto()


STATUS_BY_MODE = {
    "03": DTCStatus.CONFIRMED,
    "07": DTCStatus.PENDING,
    "0A": DTCStatus.PERMANENT,
    # freeze frame DTC (0102 / 0202) is the code that stored the frame
    "01": DTCStatus.CONFIRMED,
    "02": DTCStatus.CONFIRMED,
}


@dataclass(frozen=True)
class TroubleCode:
    code: str
    status: DTCStatus = DTCStatus.CONFIRMED

    @property
    def system(self) -> str:
        return {"P": "powertrain", "C": "chassis", "B": "body", "U": "network"}[self.code[0]]

    def __str__(self) -> str:
        return self.code


def decode_dtc_bytes(a: int, b: int) -> Optional[str]:
    """
    Convert one 2-byte DTC word to standard format.
    Returns None for the 0000 filler word.
    """
    if a == 0 and b == 0:
        return None
    prefix = DTC_PREFIXES[(a >> 6) & 0x03]
    first_digit = (a >> 4) & 0x03
    return f"{prefix}{first_digit}{a & 0x0F:X}{b:02X}"


def decode_dtc_hex(hex_word: str) -> Optional[str]:
    """'0118' -> 'P0118'."""
    word = (hex_word or "").replace(" ", "")
    if len(word) != 4:
        raise ValueError(f"DTC word must be 4 hex digits: {hex_word!r}")
    raw = bytes.fromhex(word)
    return decode_dtc_bytes(raw[0], raw[1])


def decode_dtc_list(payload: bytes, status: DTCStatus = DTCStatus.CONFIRMED) -> List[TroubleCode]:
    """
    Walk a mode 03/07/0A payload (response mode byte already removed).

    CAN replies carry a leading count byte, which makes the payload length
    odd; it is skipped. A trailing half word is ignored.
    """
    data = bytes(payload or b"")
    if len(data) % 2 == 1:
        data = data[1:]

    codes: List[TroubleCode] = []
    for i in range(0, len(data) - 1, 2):
        code = decode_dtc_bytes(data[i], data[i + 1])
        if code is not None:
            codes.append(TroubleCode(code, status))
    return codes


def decode_single_dtc(payload: bytes) -> Optional[TroubleCode]:
    if len(payload or b"") < 2:
        raise DecodeError(DecodeFailure.PAYLOAD_TOO_SHORT, detail="need 2 bytes")
    code = decode_dtc_bytes(payload[0], payload[1])
    return TroubleCode(code, STATUS_BY_MODE["02"]) if code else None


# ---------------------------------------------------------------------------
# Status since DTCs cleared (0101) / this drive cycle (0141)
# ---------------------------------------------------------------------------

BASE_TESTS = (
    "MISFIRE_MONITORING",
    "FUEL_SYSTEM_MONITORING",
    "COMPONENT_MONITORING",
)

# index == bit number in bytes C (available) and D (incomplete)
SPARK_TESTS = (
    "CATALYST_MONITORING",
    "HEATED_CATALYST_MONITORING",
    "EVAPORATIVE_SYSTEM_MONITORING",
    "SECONDARY_AIR_SYSTEM_MONITORING",
    "AC_REFRIGERANT_MONITORING",
    "OXYGEN_SENSOR_MONITORING",
    "OXYGEN_SENSOR_HEATER_MONITORING",
    "EGR_VVT_SYSTEM_MONITORING",
)

COMPRESSION_TESTS = (
    "NMHC_CATALYST_MONITORING",
    "NOX_SCR_AFTERTREATMENT_MONITORING",
    None,
    "BOOST_PRESSURE_MONITORING",
    None,
    "EXHAUST_GAS_SENSOR_MONITORING",
    "PM_FILTER_MONITORING",
    "EGR_VVT_SYSTEM_MONITORING",
)


@dataclass(frozen=True)
class MonitorReadiness:
    available: bool
    complete: bool

    @property
    def ready(self) -> bool:
        return not self.available or self.complete


@dataclass(frozen=True)
class Status:
    mil: bool
    dtc_count: int
    ignition_type: str
    monitors: Dict[str, MonitorReadiness] = field(default_factory=dict)

    @property
    def incomplete_monitors(self) -> List[str]:
        return [name for name, r in self.monitors.items() if r.available and not r.complete]


def decode_status(payload: bytes) -> Status:
    if len(payload or b"") < 4:
        raise DecodeError(DecodeFailure.PAYLOAD_TOO_SHORT, detail="status needs 4 bytes")
    a, b, c, d = payload[0], payload[1], payload[2], payload[3]

    compression = bool(b & 0x08)
    monitors: Dict[str, MonitorReadiness] = {}

    for bit, name in enumerate(BASE_TESTS):
        monitors[name] = MonitorReadiness(
            available=bool(b & (1 << bit)),
            complete=not (b & (1 << (bit + 4))),
        )

    tests = COMPRESSION_TESTS if compression else SPARK_TESTS
    for bit, name in enumerate(tests):
        if name is None:
            continue
        monitors[name] = MonitorReadiness(
            available=bool(c & (1 << bit)),
            complete=not (d & (1 << bit)),
        )

    return Status(
        mil=bool(a & 0x80),
        dtc_count=a & 0x7F,
        ignition_type="compression" if compression else "spark",
        monitors=monitors,
    )
