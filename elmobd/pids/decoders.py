"""
Decode rules.

A rule is a frozen `Decoder(rule, uas_id)` value. `decode()` dispatches
through the rule -> function table below. Every function receives the PID
payload with the echo byte already removed and either returns a value or
raises DecodeError scoped to that one PID.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..dtc import (
    DTCStatus,
    decode_dtc_list,
    decode_single_dtc,
    decode_status,
)
from ..elm.errors import DecodeError, DecodeFailure
from ..protocol.ascii import extract_ascii
from .units import UAS_IDS, Measurement, MeasurementSystem, Unit, measurement


class DecodeRule(str, Enum):
    NONE = "none"
    PID = "pid"
    STATUS = "status"
    SINGLE_DTC = "single_dtc"
    FUEL_STATUS = "fuel_status"
    PERCENT = "percent"
    PERCENT_CENTERED = "percent_centered"
    TEMP = "temp"
    FUEL_PRESSURE = "fuel_pressure"
    PRESSURE = "pressure"
    TIMING_ADVANCE = "timing_advance"
    AIR_STATUS = "air_status"
    O2_SENSORS = "o2_sensors"
    O2_SENSORS_ALT = "o2_sensors_alt"
    SENSOR_VOLTAGE = "sensor_voltage"
    SENSOR_VOLTAGE_BIG = "sensor_voltage_big"
    OBD_COMPLIANCE = "obd_compliance"
    AUX_INPUT_STATUS = "aux_input_status"
    EVAP_PRESSURE = "evap_pressure"
    EVAP_PRESSURE_ALT = "evap_pressure_alt"
    EVAP_PRESSURE_ABS = "evap_pressure_abs"
    CURRENT_CENTERED = "current_centered"
    MAX_MAF = "max_maf"
    FUEL_TYPE = "fuel_type"
    INJECT_TIMING = "inject_timing"
    FUEL_RATE = "fuel_rate"
    UAS = "uas"
    DTC = "dtc"
    MONITOR = "monitor"
    ENCODED_STRING = "encoded_string"
    COUNT = "count"
    CVN = "cvn"


@dataclass(frozen=True)
class Decoder:
    rule: DecodeRule
    uas_id: Optional[int] = None

    def decode(
        self,
        payload: bytes,
        system: MeasurementSystem = MeasurementSystem.METRIC,
        *,
        status: DTCStatus = DTCStatus.CONFIRMED,
    ) -> Any:
        fn = _RULES.get(self.rule)
        if fn is None:
            raise DecodeError(DecodeFailure.UNSUPPORTED_DECODER, detail=self.rule.value)
        return fn(bytes(payload or b""), self, system, status)

    def __repr__(self) -> str:
        if self.rule is DecodeRule.UAS:
            return f"Decoder(uas=0x{self.uas_id or 0:02X})"
        return f"Decoder({self.rule.value})"


def uas(uas_id: int) -> Decoder:
    return Decoder(DecodeRule.UAS, uas_id)


# ---------------------------------------------------------------------------
# Lookup tables
# ---------------------------------------------------------------------------

FUEL_STATUS = {
    1: "Open loop due to insufficient engine temperature",
    2: "Closed loop, using oxygen sensor feedback to determine fuel mix",
    4: "Open loop due to engine load OR fuel cut due to deceleration",
    8: "Open loop due to system failure",
    16: "Closed loop, using at least one oxygen sensor but there is a fault in the feedback system",
}

AIR_STATUS = {
    1: "Upstream",
    2: "Downstream of catalytic converter",
    4: "From the outside atmosphere or off",
    8: "Pump commanded on for diagnostics",
}

OBD_COMPLIANCE = {
    1: "OBD-II as defined by the CARB",
    2: "OBD as defined by the EPA",
    3: "OBD and OBD-II",
    4: "OBD-I",
    5: "Not OBD compliant",
    6: "EOBD (Europe)",
    7: "EOBD and OBD-II",
    8: "EOBD and OBD",
    9: "EOBD, OBD and OBD II",
    10: "JOBD (Japan)",
    11: "JOBD and OBD II",
    12: "JOBD and EOBD",
    13: "JOBD, EOBD, and OBD II",
    17: "Engine Manufacturer Diagnostics (EMD)",
    18: "Engine Manufacturer Diagnostics Enhanced (EMD+)",
    19: "Heavy Duty On-Board Diagnostics (Child/Partial) (HD OBD-C)",
    20: "Heavy Duty On-Board Diagnostics (HD OBD)",
    21: "World Wide Harmonized OBD (WWH OBD)",
    23: "Heavy Duty Euro OBD Stage I without NOx control (HD EOBD-I)",
    24: "Heavy Duty Euro OBD Stage I with NOx control (HD EOBD-I N)",
    25: "Heavy Duty Euro OBD Stage II without NOx control (HD EOBD-II)",
    26: "Heavy Duty Euro OBD Stage II with NOx control (HD EOBD-II N)",
    28: "Brazil OBD Phase 1 (OBDBr-1)",
    29: "Brazil OBD Phase 2 (OBDBr-2)",
    30: "Korean OBD (KOBD)",
    31: "India OBD I (IOBD I)",
    32: "India OBD II (IOBD II)",
    33: "Heavy Duty Euro OBD Stage VI (HD EOBD-IV)",
}

FUEL_TYPES = (
    "Not available",
    "Gasoline",
    "Methanol",
    "Ethanol",
    "Diesel",
    "LPG",
    "CNG",
    "Propane",
    "Electric",
    "Bifuel running Gasoline",
    "Bifuel running Methanol",
    "Bifuel running Ethanol",
    "Bifuel running LPG",
    "Bifuel running CNG",
    "Bifuel running Propane",
    "Bifuel running Electricity",
    "Bifuel running electric and combustion engine",
    "Hybrid gasoline",
    "Hybrid Ethanol",
    "Hybrid Diesel",
    "Hybrid Electric",
    "Hybrid running electric and combustion engine",
    "Hybrid Regenerative",
    "Bifuel running diesel",
)

# mode 06 / mode 05 standardized test IDs
TEST_IDS = {
    0x01: ("RTL_THRESHOLD_VOLTAGE", "Rich to lean sensor threshold voltage"),
    0x02: ("LTR_THRESHOLD_VOLTAGE", "Lean to rich sensor threshold voltage"),
    0x03: ("LOW_VOLTAGE_SWITCH_TIME", "Low sensor voltage for switch time calculation"),
    0x04: ("HIGH_VOLTAGE_SWITCH_TIME", "High sensor voltage for switch time calculation"),
    0x05: ("RTL_SWITCH_TIME", "Rich to lean sensor switch time"),
    0x06: ("LTR_SWITCH_TIME", "Lean to rich sensor switch time"),
    0x07: ("MIN_VOLTAGE", "Minimum sensor voltage for test cycle"),
    0x08: ("MAX_VOLTAGE", "Maximum sensor voltage for test cycle"),
    0x09: ("TRANSITION_TIME", "Time between sensor transitions"),
    0x0A: ("SENSOR_PERIOD", "Sensor period"),
    0x0B: ("MISFIRE_AVERAGE", "Average misfire counts for last ten driving cycles"),
    0x0C: ("MISFIRE_COUNT", "Misfire counts for last/current driving cycles"),
}

MONITOR_BLOCK = 9


@dataclass(frozen=True)
class MonitorTest:
    mid: int
    tid: int
    name: str
    description: str
    value: Measurement
    min: Measurement
    max: Measurement

    @property
    def passed(self) -> bool:
        return self.min.value <= self.value.value <= self.max.value


@dataclass(frozen=True)
class Monitor:
    tests: Tuple[MonitorTest, ...] = field(default_factory=tuple)

    def __getitem__(self, tid: int) -> MonitorTest:
        for t in self.tests:
            if t.tid == tid:
                return t
        raise KeyError(tid)

    def __len__(self) -> int:
        return len(self.tests)

    @property
    def passed(self) -> bool:
        return all(t.passed for t in self.tests)


# ---------------------------------------------------------------------------
# Rule implementations
# ---------------------------------------------------------------------------

def _need(data: bytes, n: int, rule: str) -> None:
    if len(data) < n:
        raise DecodeError(
            DecodeFailure.PAYLOAD_TOO_SHORT,
            detail=f"{rule} needs {n} byte(s), got {len(data)}",
        )


def _u16(data: bytes, start: int = 0) -> int:
    return (data[start] << 8) | data[start + 1]


def _pid_bitmap(data, dec, system, status):
    """Supported-PID bitmap -> tuple of PID offsets (1..32) that are set."""
    _need(data, 4, "pid")
    bits = int.from_bytes(data[:4], "big")
    return tuple(i + 1 for i in range(32) if bits & (1 << (31 - i)))


def _status(data, dec, system, status):
    return decode_status(data)


def _single_dtc(data, dec, system, status):
    return decode_single_dtc(data)


def _fuel_status(data, dec, system, status):
    _need(data, 1, "fuel_status")
    a = data[0]
    b = data[1] if len(data) > 1 else 0
    if a not in FUEL_STATUS:
        raise DecodeError(DecodeFailure.OUT_OF_DOMAIN, detail=f"fuel system 1 status 0x{a:02X}")
    return (FUEL_STATUS[a], FUEL_STATUS.get(b))


def _percent(data, dec, system, status):
    _need(data, 1, "percent")
    return measurement(data[0] * 100.0 / 255.0, Unit.PERCENT, system)


def _percent_centered(data, dec, system, status):
    _need(data, 1, "percent_centered")
    return measurement((data[0] - 128) * 100.0 / 128.0, Unit.PERCENT, system)


def _temp(data, dec, system, status):
    _need(data, 1, "temp")
    raw = int.from_bytes(data[:2] if len(data) >= 2 else data[:1], "big")
    return measurement(raw - 40, Unit.CELSIUS, system)


def _fuel_pressure(data, dec, system, status):
    _need(data, 1, "fuel_pressure")
    return measurement(data[0] * 3, Unit.KPA, system)


def _pressure(data, dec, system, status):
    _need(data, 1, "pressure")
    return measurement(data[0], Unit.KPA, system)


def _timing_advance(data, dec, system, status):
    _need(data, 1, "timing_advance")
    return measurement((data[0] - 128) / 2.0, Unit.DEGREE, system)


def _air_status(data, dec, system, status):
    _need(data, 1, "air_status")
    if data[0] not in AIR_STATUS:
        raise DecodeError(DecodeFailure.OUT_OF_DOMAIN, detail=f"air status 0x{data[0]:02X}")
    return AIR_STATUS[data[0]]


def _o2_sensors(data, dec, system, status):
    """((bank1 s1..s4), (bank2 s1..s4)) presence flags."""
    _need(data, 1, "o2_sensors")
    a = data[0]
    return (
        tuple(bool(a & (1 << i)) for i in range(0, 4)),
        tuple(bool(a & (1 << i)) for i in range(4, 8)),
    )


def _o2_sensors_alt(data, dec, system, status):
    """Four banks of two sensors."""
    _need(data, 1, "o2_sensors_alt")
    a = data[0]
    return tuple((bool(a & (1 << i)), bool(a & (1 << (i + 1)))) for i in range(0, 8, 2))


def _sensor_voltage(data, dec, system, status):
    _need(data, 2, "sensor_voltage")
    return measurement(data[0] / 200.0, Unit.VOLT, system)


def _sensor_voltage_big(data, dec, system, status):
    _need(data, 4, "sensor_voltage_big")
    return measurement(_u16(data, 2) * 8.0 / 65535.0, Unit.VOLT, system)


def _obd_compliance(data, dec, system, status):
    _need(data, 1, "obd_compliance")
    if data[0] not in OBD_COMPLIANCE:
        raise DecodeError(DecodeFailure.OUT_OF_DOMAIN, detail=f"OBD standard {data[0]}")
    return OBD_COMPLIANCE[data[0]]


def _aux_input_status(data, dec, system, status):
    _need(data, 1, "aux_input_status")
    return bool(data[0] & 0x01)


def _evap_pressure(data, dec, system, status):
    _need(data, 2, "evap_pressure")
    return measurement(int.from_bytes(data[:2], "big", signed=True) / 4.0, Unit.PA, system)


def _evap_pressure_alt(data, dec, system, status):
    _need(data, 2, "evap_pressure_alt")
    return measurement(_u16(data) - 32767, Unit.PA, system)


def _evap_pressure_abs(data, dec, system, status):
    _need(data, 2, "evap_pressure_abs")
    return measurement(_u16(data) / 200.0, Unit.KPA, system)


def _current_centered(data, dec, system, status):
    _need(data, 4, "current_centered")
    return measurement(_u16(data, 2) / 256.0 - 128.0, Unit.MILLIAMP, system)


def _max_maf(data, dec, system, status):
    _need(data, 1, "max_maf")
    return measurement(data[0] * 10, Unit.GRAMS_PER_SEC, system)


def _fuel_type(data, dec, system, status):
    _need(data, 1, "fuel_type")
    if data[0] >= len(FUEL_TYPES):
        raise DecodeError(DecodeFailure.OUT_OF_DOMAIN, detail=f"fuel type {data[0]}")
    return FUEL_TYPES[data[0]]


def _inject_timing(data, dec, system, status):
    _need(data, 2, "inject_timing")
    return measurement((_u16(data) - 26880) / 128.0, Unit.DEGREE, system)


def _fuel_rate(data, dec, system, status):
    _need(data, 2, "fuel_rate")
    return measurement(_u16(data) * 0.05, Unit.LITERS_PER_HOUR, system)


def _uas(data, dec, system, status):
    spec = UAS_IDS.get(dec.uas_id if dec.uas_id is not None else -1)
    if spec is None:
        raise DecodeError(DecodeFailure.UNSUPPORTED_DECODER, detail=f"UAS id {dec.uas_id!r}")
    if not data:
        raise DecodeError(DecodeFailure.PAYLOAD_TOO_SHORT, detail="uas needs at least 1 byte")
    return spec.decode(data, system)


def _dtc(data, dec, system, status):
    return decode_dtc_list(data, status)


def _monitor_test(block: bytes, system: MeasurementSystem) -> Optional[MonitorTest]:
    mid, tid, uas_id = block[0], block[1], block[2]
    spec = UAS_IDS.get(uas_id)
    if spec is None:
        return None
    name, desc = TEST_IDS.get(tid, (f"TID_{tid:02X}", "Manufacturer specific test"))
    return MonitorTest(
        mid=mid,
        tid=tid,
        name=name,
        description=desc,
        value=spec.decode(block[3:5], system),
        min=spec.decode(block[5:7], system),
        max=spec.decode(block[7:9], system),
    )


def _monitor(data, dec, system, status):
    """
    Mode 06 reply: repeated 9-byte blocks
    [MID, TID, UAS, VALUE_H, VALUE_L, MIN_H, MIN_L, MAX_H, MAX_L].
    Blocks with an unknown UAS id are skipped.
    """
    _need(data, MONITOR_BLOCK, "monitor")
    usable = len(data) - (len(data) % MONITOR_BLOCK)
    tests: List[MonitorTest] = []
    for n in range(0, usable, MONITOR_BLOCK):
        t = _monitor_test(data[n : n + MONITOR_BLOCK], system)
        if t is not None:
            tests.append(t)
    return Monitor(tuple(tests))


def _encoded_string(data, dec, system, status):
    # leading message-count byte and NUL padding are not text
    text = extract_ascii(data).strip()
    if not text:
        raise DecodeError(DecodeFailure.NO_DATA, detail="empty string")
    return text


def _count(data, dec, system, status):
    _need(data, 1, "count")
    return data[0]


def _cvn(data, dec, system, status):
    if len(data) % 4 == 1:
        data = data[1:]
    _need(data, 4, "cvn")
    return " ".join(data[i : i + 4].hex().upper() for i in range(0, len(data) - 3, 4))


_RULES: Dict[DecodeRule, Callable[[bytes, Decoder, MeasurementSystem, DTCStatus], Any]] = {
    DecodeRule.PID: _pid_bitmap,
    DecodeRule.STATUS: _status,
    DecodeRule.SINGLE_DTC: _single_dtc,
    DecodeRule.FUEL_STATUS: _fuel_status,
    DecodeRule.PERCENT: _percent,
    DecodeRule.PERCENT_CENTERED: _percent_centered,
    DecodeRule.TEMP: _temp,
    DecodeRule.FUEL_PRESSURE: _fuel_pressure,
    DecodeRule.PRESSURE: _pressure,
    DecodeRule.TIMING_ADVANCE: _timing_advance,
    DecodeRule.AIR_STATUS: _air_status,
    DecodeRule.O2_SENSORS: _o2_sensors,
    DecodeRule.O2_SENSORS_ALT: _o2_sensors_alt,
    DecodeRule.SENSOR_VOLTAGE: _sensor_voltage,
    DecodeRule.SENSOR_VOLTAGE_BIG: _sensor_voltage_big,
    DecodeRule.OBD_COMPLIANCE: _obd_compliance,
    DecodeRule.AUX_INPUT_STATUS: _aux_input_status,
    DecodeRule.EVAP_PRESSURE: _evap_pressure,
    DecodeRule.EVAP_PRESSURE_ALT: _evap_pressure_alt,
    DecodeRule.EVAP_PRESSURE_ABS: _evap_pressure_abs,
    DecodeRule.CURRENT_CENTERED: _current_centered,
    DecodeRule.MAX_MAF: _max_maf,
    DecodeRule.FUEL_TYPE: _fuel_type,
    DecodeRule.INJECT_TIMING: _inject_timing,
    DecodeRule.FUEL_RATE: _fuel_rate,
    DecodeRule.UAS: _uas,
    DecodeRule.DTC: _dtc,
    DecodeRule.MONITOR: _monitor,
    DecodeRule.ENCODED_STRING: _encoded_string,
    DecodeRule.COUNT: _count,
    DecodeRule.CVN: _cvn,
}
