"""
OBD-II command catalog
======================
Every command the library knows about, across all supported modes.
Built once on first use from the fixed tables below and never mutated.

Lookup:
    commands.RPM
    commands["010C"]
    commands.by_mode("09")

`bytes` counts the PID echo byte plus the data bytes (RPM = 3, SPEED = 2);
0 means variable length.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple, Union

from .decoders import Decoder, DecodeRule, uas

NONE = Decoder(DecodeRule.NONE)
PID = Decoder(DecodeRule.PID)
STATUS = Decoder(DecodeRule.STATUS)
SINGLE_DTC = Decoder(DecodeRule.SINGLE_DTC)
FUEL_STATUS = Decoder(DecodeRule.FUEL_STATUS)
PERCENT = Decoder(DecodeRule.PERCENT)
PERCENT_CENTERED = Decoder(DecodeRule.PERCENT_CENTERED)
TEMP = Decoder(DecodeRule.TEMP)
FUEL_PRESSURE = Decoder(DecodeRule.FUEL_PRESSURE)
PRESSURE = Decoder(DecodeRule.PRESSURE)
TIMING_ADVANCE = Decoder(DecodeRule.TIMING_ADVANCE)
AIR_STATUS = Decoder(DecodeRule.AIR_STATUS)
O2_SENSORS = Decoder(DecodeRule.O2_SENSORS)
O2_SENSORS_ALT = Decoder(DecodeRule.O2_SENSORS_ALT)
SENSOR_VOLTAGE = Decoder(DecodeRule.SENSOR_VOLTAGE)
SENSOR_VOLTAGE_BIG = Decoder(DecodeRule.SENSOR_VOLTAGE_BIG)
OBD_COMPLIANCE = Decoder(DecodeRule.OBD_COMPLIANCE)
AUX_INPUT_STATUS = Decoder(DecodeRule.AUX_INPUT_STATUS)
EVAP_PRESSURE = Decoder(DecodeRule.EVAP_PRESSURE)
EVAP_PRESSURE_ALT = Decoder(DecodeRule.EVAP_PRESSURE_ALT)
EVAP_PRESSURE_ABS = Decoder(DecodeRule.EVAP_PRESSURE_ABS)
CURRENT_CENTERED = Decoder(DecodeRule.CURRENT_CENTERED)
MAX_MAF = Decoder(DecodeRule.MAX_MAF)
FUEL_TYPE = Decoder(DecodeRule.FUEL_TYPE)
INJECT_TIMING = Decoder(DecodeRule.INJECT_TIMING)
FUEL_RATE = Decoder(DecodeRule.FUEL_RATE)
DTC = Decoder(DecodeRule.DTC)
MONITOR = Decoder(DecodeRule.MONITOR)
ENCODED_STRING = Decoder(DecodeRule.ENCODED_STRING)
COUNT = Decoder(DecodeRule.COUNT)
CVN = Decoder(DecodeRule.CVN)


@dataclass(frozen=True)
class OBDCommand:
    name: str
    description: str
    command: str
    bytes: int
    decoder: Decoder

    @property
    def is_at(self) -> bool:
        return self.command.startswith("AT")

    @property
    def mode(self) -> Optional[str]:
        return None if self.is_at else self.command[:2]

    @property
    def pid(self) -> Optional[int]:
        """PID / MID / InfoType byte, None for modes without one (03, 04, 07, 0A)."""
        if self.is_at or len(self.command) < 4:
            return None
        return int(self.command[2:4], 16)

    @property
    def pid_hex(self) -> str:
        return self.command[2:4]

    @property
    def request(self) -> str:
        """Text actually sent; freeze-frame reads address frame 00."""
        if self.mode == "02":
            return self.command + "00"
        return self.command

    def __str__(self) -> str:
        return f"{self.command}: {self.description}"


# (name, description, pid, bytes, decoder)
_MODE01: Tuple[Tuple[str, str, int, int, Decoder], ...] = (
    ("PIDS_A", "Supported PIDs [01-20]", 0x00, 5, PID),
    ("STATUS", "Status since DTCs cleared", 0x01, 5, STATUS),
    ("FREEZE_DTC", "DTC that triggered the freeze frame", 0x02, 3, SINGLE_DTC),
    ("FUEL_STATUS", "Fuel System Status", 0x03, 3, FUEL_STATUS),
    ("ENGINE_LOAD", "Calculated Engine Load", 0x04, 2, PERCENT),
    ("COOLANT_TEMP", "Engine Coolant Temperature", 0x05, 2, TEMP),
    ("SHORT_FUEL_TRIM_1", "Short Term Fuel Trim - Bank 1", 0x06, 2, PERCENT_CENTERED),
    ("LONG_FUEL_TRIM_1", "Long Term Fuel Trim - Bank 1", 0x07, 2, PERCENT_CENTERED),
    ("SHORT_FUEL_TRIM_2", "Short Term Fuel Trim - Bank 2", 0x08, 2, PERCENT_CENTERED),
    ("LONG_FUEL_TRIM_2", "Long Term Fuel Trim - Bank 2", 0x09, 2, PERCENT_CENTERED),
    ("FUEL_PRESSURE", "Fuel Pressure", 0x0A, 2, FUEL_PRESSURE),
    ("INTAKE_PRESSURE", "Intake Manifold Pressure", 0x0B, 2, PRESSURE),
    ("RPM", "Engine RPM", 0x0C, 3, uas(0x07)),
    ("SPEED", "Vehicle Speed", 0x0D, 2, uas(0x09)),
    ("TIMING_ADVANCE", "Timing Advance", 0x0E, 2, TIMING_ADVANCE),
    ("INTAKE_TEMP", "Intake Air Temp", 0x0F, 2, TEMP),
    ("MAF", "Air Flow Rate (MAF)", 0x10, 3, uas(0x27)),
    ("THROTTLE_POS", "Throttle Position", 0x11, 2, PERCENT),
    ("AIR_STATUS", "Secondary Air Status", 0x12, 2, AIR_STATUS),
    ("O2_SENSORS", "O2 Sensors Present", 0x13, 2, O2_SENSORS),
    ("O2_B1S1", "O2: Bank 1 - Sensor 1 Voltage", 0x14, 3, SENSOR_VOLTAGE),
    ("O2_B1S2", "O2: Bank 1 - Sensor 2 Voltage", 0x15, 3, SENSOR_VOLTAGE),
    ("O2_B1S3", "O2: Bank 1 - Sensor 3 Voltage", 0x16, 3, SENSOR_VOLTAGE),
    ("O2_B1S4", "O2: Bank 1 - Sensor 4 Voltage", 0x17, 3, SENSOR_VOLTAGE),
    ("O2_B2S1", "O2: Bank 2 - Sensor 1 Voltage", 0x18, 3, SENSOR_VOLTAGE),
    ("O2_B2S2", "O2: Bank 2 - Sensor 2 Voltage", 0x19, 3, SENSOR_VOLTAGE),
    ("O2_B2S3", "O2: Bank 2 - Sensor 3 Voltage", 0x1A, 3, SENSOR_VOLTAGE),
    ("O2_B2S4", "O2: Bank 2 - Sensor 4 Voltage", 0x1B, 3, SENSOR_VOLTAGE),
    ("OBD_COMPLIANCE", "OBD Standards Compliance", 0x1C, 2, OBD_COMPLIANCE),
    ("O2_SENSORS_ALT", "O2 Sensors Present (alternate)", 0x1D, 2, O2_SENSORS_ALT),
    ("AUX_INPUT_STATUS", "Auxiliary input status (power take off)", 0x1E, 2, AUX_INPUT_STATUS),
    ("RUN_TIME", "Engine Run Time", 0x1F, 3, uas(0x12)),
    ("PIDS_B", "Supported PIDs [21-40]", 0x20, 5, PID),
    ("DISTANCE_W_MIL", "Distance Traveled with MIL on", 0x21, 3, uas(0x25)),
    ("FUEL_RAIL_PRESSURE_VAC", "Fuel Rail Pressure (relative to vacuum)", 0x22, 3, uas(0x19)),
    ("FUEL_RAIL_PRESSURE_DIRECT", "Fuel Rail Pressure (direct inject)", 0x23, 3, uas(0x1B)),
    ("O2_S1_WR_VOLTAGE", "O2 Sensor 1 WR Lambda Voltage", 0x24, 5, SENSOR_VOLTAGE_BIG),
    ("O2_S2_WR_VOLTAGE", "O2 Sensor 2 WR Lambda Voltage", 0x25, 5, SENSOR_VOLTAGE_BIG),
    ("O2_S3_WR_VOLTAGE", "O2 Sensor 3 WR Lambda Voltage", 0x26, 5, SENSOR_VOLTAGE_BIG),
    ("O2_S4_WR_VOLTAGE", "O2 Sensor 4 WR Lambda Voltage", 0x27, 5, SENSOR_VOLTAGE_BIG),
    ("O2_S5_WR_VOLTAGE", "O2 Sensor 5 WR Lambda Voltage", 0x28, 5, SENSOR_VOLTAGE_BIG),
    ("O2_S6_WR_VOLTAGE", "O2 Sensor 6 WR Lambda Voltage", 0x29, 5, SENSOR_VOLTAGE_BIG),
    ("O2_S7_WR_VOLTAGE", "O2 Sensor 7 WR Lambda Voltage", 0x2A, 5, SENSOR_VOLTAGE_BIG),
    ("O2_S8_WR_VOLTAGE", "O2 Sensor 8 WR Lambda Voltage", 0x2B, 5, SENSOR_VOLTAGE_BIG),
    ("COMMANDED_EGR", "Commanded EGR", 0x2C, 2, PERCENT),
    ("EGR_ERROR", "EGR Error", 0x2D, 2, PERCENT_CENTERED),
    ("EVAPORATIVE_PURGE", "Commanded Evaporative Purge", 0x2E, 2, PERCENT),
    ("FUEL_LEVEL", "Fuel Tank Level Input", 0x2F, 2, PERCENT),
    ("WARMUPS_SINCE_DTC_CLEAR", "Number of warm-ups since codes cleared", 0x30, 2, uas(0x01)),
    ("DISTANCE_SINCE_DTC_CLEAR", "Distance traveled since codes cleared", 0x31, 3, uas(0x25)),
    ("EVAP_VAPOR_PRESSURE", "Evaporative system vapor pressure", 0x32, 3, EVAP_PRESSURE),
    ("BAROMETRIC_PRESSURE", "Barometric Pressure", 0x33, 2, PRESSURE),
    ("O2_S1_WR_CURRENT", "O2 Sensor 1 WR Lambda Current", 0x34, 5, CURRENT_CENTERED),
    ("O2_S2_WR_CURRENT", "O2 Sensor 2 WR Lambda Current", 0x35, 5, CURRENT_CENTERED),
    ("O2_S3_WR_CURRENT", "O2 Sensor 3 WR Lambda Current", 0x36, 5, CURRENT_CENTERED),
    ("O2_S4_WR_CURRENT", "O2 Sensor 4 WR Lambda Current", 0x37, 5, CURRENT_CENTERED),
    ("O2_S5_WR_CURRENT", "O2 Sensor 5 WR Lambda Current", 0x38, 5, CURRENT_CENTERED),
    ("O2_S6_WR_CURRENT", "O2 Sensor 6 WR Lambda Current", 0x39, 5, CURRENT_CENTERED),
    ("O2_S7_WR_CURRENT", "O2 Sensor 7 WR Lambda Current", 0x3A, 5, CURRENT_CENTERED),
    ("O2_S8_WR_CURRENT", "O2 Sensor 8 WR Lambda Current", 0x3B, 5, CURRENT_CENTERED),
    ("CATALYST_TEMP_B1S1", "Catalyst Temperature: Bank 1 - Sensor 1", 0x3C, 3, uas(0x16)),
    ("CATALYST_TEMP_B2S1", "Catalyst Temperature: Bank 2 - Sensor 1", 0x3D, 3, uas(0x16)),
    ("CATALYST_TEMP_B1S2", "Catalyst Temperature: Bank 1 - Sensor 2", 0x3E, 3, uas(0x16)),
    ("CATALYST_TEMP_B2S2", "Catalyst Temperature: Bank 2 - Sensor 2", 0x3F, 3, uas(0x16)),
    ("PIDS_C", "Supported PIDs [41-60]", 0x40, 5, PID),
    ("STATUS_DRIVE_CYCLE", "Monitor status this drive cycle", 0x41, 5, STATUS),
    ("CONTROL_MODULE_VOLTAGE", "Control module voltage", 0x42, 3, uas(0x0B)),
    ("ABSOLUTE_LOAD", "Absolute load value", 0x43, 3, PERCENT),
    ("COMMANDED_EQUIV_RATIO", "Commanded equivalence ratio", 0x44, 3, uas(0x1E)),
    ("RELATIVE_THROTTLE_POS", "Relative throttle position", 0x45, 2, PERCENT),
    ("AMBIENT_AIR_TEMP", "Ambient air temperature", 0x46, 2, TEMP),
    ("THROTTLE_POS_B", "Absolute throttle position B", 0x47, 2, PERCENT),
    ("THROTTLE_POS_C", "Absolute throttle position C", 0x48, 2, PERCENT),
    ("ACCELERATOR_POS_D", "Accelerator pedal position D", 0x49, 2, PERCENT),
    ("ACCELERATOR_POS_E", "Accelerator pedal position E", 0x4A, 2, PERCENT),
    ("ACCELERATOR_POS_F", "Accelerator pedal position F", 0x4B, 2, PERCENT),
    ("THROTTLE_ACTUATOR", "Commanded throttle actuator", 0x4C, 2, PERCENT),
    ("RUN_TIME_MIL", "Time run with MIL on", 0x4D, 3, uas(0x34)),
    ("TIME_SINCE_DTC_CLEARED", "Time since trouble codes cleared", 0x4E, 3, uas(0x34)),
    ("MAX_VALUES", "Maximum value for various values", 0x4F, 5, NONE),
    ("MAX_MAF", "Maximum value for air flow rate from mass air flow sensor", 0x50, 5, MAX_MAF),
    ("FUEL_TYPE", "Fuel Type", 0x51, 2, FUEL_TYPE),
    ("ETHANOL_PERCENT", "Ethanol fuel %", 0x52, 2, PERCENT),
    ("EVAP_VAPOR_PRESSURE_ABS", "Absolute Evap system vapor pressure", 0x53, 3, EVAP_PRESSURE_ABS),
    ("EVAP_VAPOR_PRESSURE_ALT", "Evap system vapor pressure", 0x54, 3, EVAP_PRESSURE_ALT),
    ("SHORT_O2_TRIM_B1", "Short term secondary O2 trim - Bank 1", 0x55, 2, PERCENT_CENTERED),
    ("LONG_O2_TRIM_B1", "Long term secondary O2 trim - Bank 1", 0x56, 2, PERCENT_CENTERED),
    ("SHORT_O2_TRIM_B2", "Short term secondary O2 trim - Bank 2", 0x57, 2, PERCENT_CENTERED),
    ("LONG_O2_TRIM_B2", "Long term secondary O2 trim - Bank 2", 0x58, 2, PERCENT_CENTERED),
    ("FUEL_RAIL_PRESSURE_ABS", "Fuel rail pressure (absolute)", 0x59, 3, uas(0x1B)),
    ("RELATIVE_ACCEL_POS", "Relative accelerator pedal position", 0x5A, 2, PERCENT),
    ("HYBRID_BATTERY_REMAINING", "Hybrid battery pack remaining life", 0x5B, 2, PERCENT),
    ("OIL_TEMP", "Engine oil temperature", 0x5C, 2, TEMP),
    ("FUEL_INJECT_TIMING", "Fuel injection timing", 0x5D, 3, INJECT_TIMING),
    ("FUEL_RATE", "Engine fuel rate", 0x5E, 3, FUEL_RATE),
    ("EMISSION_REQ", "Designed emission requirements", 0x5F, 2, NONE),
)

_GENERAL = (
    ("ATD", "Set all to defaults"),
    ("ATZ", "Reset all"),
    ("ATRV", "Voltage detected by OBD-II adapter"),
    ("ATL0", "Line feeds off"),
    ("ATE0", "Echo off"),
    ("ATH1", "Headers on"),
    ("ATH0", "Headers off"),
    ("ATAT1", "Adaptive timing auto 1"),
    ("ATSTFF", "Set time to fast"),
    ("ATDPN", "Describe protocol by number"),
    ("ATSP0", "Auto protocol"),
)

_MODE05 = (
    ("RTL_THRESHOLD_VOLTAGE", "Rich to Lean Sensor Threshold Voltage"),
    ("LTR_THRESHOLD_VOLTAGE", "Lean to Rich Sensor Threshold Voltage"),
    ("LOW_VOLTAGE_SWITCH_TIME", "Low Sensor Voltage for Switch Time Calculation"),
    ("HIGH_VOLTAGE_SWITCH_TIME", "High Sensor Voltage for Switch Time Calculation"),
    ("RTL_SWITCH_TIME", "Rich to Lean Sensor Switch Time"),
    ("LTR_SWITCH_TIME", "Lean to Rich Sensor Switch Time"),
    ("MIN_VOLTAGE", "Minimum Sensor Voltage for Test Cycle"),
    ("MAX_VOLTAGE", "Maximum Sensor Voltage for Test Cycle"),
    ("TRANSITION_TIME", "Time between Sensor Transitions"),
)


def _mode06_rows() -> List[Tuple[str, str, int]]:
    rows: List[Tuple[str, str, int]] = [("MIDS_A", "Supported MIDs [01-20]", 0x00)]
    mid = 0x01
    for bank in range(1, 5):
        for sensor in range(1, 5):
            rows.append((f"MONITOR_O2_B{bank}S{sensor}", f"O2 Sensor Monitor Bank {bank} - Sensor {sensor}", mid))
            mid += 1
    rows.append(("MIDS_B", "Supported MIDs [21-40]", 0x20))
    for n in range(1, 5):
        rows.append((f"MONITOR_CATALYST_B{n}", f"Catalyst Monitor Bank {n}", 0x20 + n))
    for n in range(1, 5):
        rows.append((f"MONITOR_EGR_B{n}", f"EGR Monitor Bank {n}", 0x30 + n))
    for n in range(1, 5):
        rows.append((f"MONITOR_VVT_B{n}", f"VVT Monitor Bank {n}", 0x34 + n))
    rows += [
        ("MONITOR_EVAP_150", "EVAP Monitor (Cap Off / 0.150\")", 0x39),
        ("MONITOR_EVAP_090", "EVAP Monitor (0.090\")", 0x3A),
        ("MONITOR_EVAP_040", "EVAP Monitor (0.040\")", 0x3B),
        ("MONITOR_EVAP_020", "EVAP Monitor (0.020\")", 0x3C),
        ("MONITOR_PURGE_FLOW", "Purge Flow Monitor", 0x3D),
        ("MIDS_C", "Supported MIDs [41-60]", 0x40),
    ]
    mid = 0x41
    for bank in range(1, 5):
        for sensor in range(1, 5):
            rows.append((f"MONITOR_O2_HEATER_B{bank}S{sensor}", f"O2 Sensor Heater Monitor Bank {bank} - Sensor {sensor}", mid))
            mid += 1
    rows.append(("MIDS_D", "Supported MIDs [61-80]", 0x60))
    for n in range(1, 5):
        rows.append((f"MONITOR_HEATED_CATALYST_B{n}", f"Heated Catalyst Monitor Bank {n}", 0x60 + n))
    for n in range(1, 5):
        rows.append((f"MONITOR_SECONDARY_AIR_{n}", f"Secondary Air Monitor {n}", 0x70 + n))
    rows.append(("MIDS_E", "Supported MIDs [81-A0]", 0x80))
    for n in range(1, 5):
        rows.append((f"MONITOR_FUEL_SYSTEM_B{n}", f"Fuel System Monitor Bank {n}", 0x80 + n))
    rows += [
        ("MONITOR_BOOST_PRESSURE_B1", "Boost Pressure Control Monitor Bank 1", 0x85),
        ("MONITOR_BOOST_PRESSURE_B2", "Boost Pressure Control Monitor Bank 2", 0x86),
        ("MONITOR_NOX_ABSORBER_B1", "NOx Absorber Monitor Bank 1", 0x90),
        ("MONITOR_NOX_ABSORBER_B2", "NOx Absorber Monitor Bank 2", 0x91),
        ("MONITOR_NOX_CATALYST_B1", "NOx Catalyst Monitor Bank 1", 0x98),
        ("MONITOR_NOX_CATALYST_B2", "NOx Catalyst Monitor Bank 2", 0x99),
        ("MIDS_F", "Supported MIDs [A1-C0]", 0xA0),
        ("MONITOR_MISFIRE_GENERAL", "Misfire Monitor General Data", 0xA1),
    ]
    for n in range(1, 13):
        rows.append((f"MONITOR_MISFIRE_CYLINDER_{n}", f"Misfire Cylinder {n} Data", 0xA1 + n))
    rows += [
        ("MONITOR_PM_FILTER_B1", "PM Filter Monitor Bank 1", 0xB0),
        ("MONITOR_PM_FILTER_B2", "PM Filter Monitor Bank 2", 0xB1),
    ]
    return rows


def _build() -> Tuple[OBDCommand, ...]:
    out: List[OBDCommand] = []

    for cmd, desc in _GENERAL:
        out.append(OBDCommand(cmd, desc, cmd, 0, NONE))

    for name, desc, pid, nbytes, dec in _MODE01:
        out.append(OBDCommand(name, desc, f"01{pid:02X}", nbytes, dec))

    # freeze frame mirrors mode 01; PIDS_* bitmaps included
    for name, desc, pid, nbytes, dec in _MODE01:
        out.append(OBDCommand(f"DTC_{name}", f"Freeze Frame: {desc}", f"02{pid:02X}", nbytes, dec))

    out.append(OBDCommand("GET_DTC", "Get DTCs", "03", 0, DTC))
    out.append(OBDCommand("CLEAR_DTC", "Clear DTCs and freeze data", "04", 0, NONE))

    for i, (name, desc) in enumerate(_MODE05, start=1):
        out.append(OBDCommand(name, desc, f"05{i:02X}", 0, MONITOR))

    for name, desc, mid in _mode06_rows():
        if name.startswith("MIDS_"):
            out.append(OBDCommand(name, desc, f"06{mid:02X}", 5, PID))
        else:
            out.append(OBDCommand(name, desc, f"06{mid:02X}", 0, MONITOR))

    out.append(OBDCommand("GET_PENDING_DTC", "Get Pending DTCs", "07", 0, DTC))
    out.append(OBDCommand("EVAP_LEAK_TEST", "EVAP System Leak Test", "0801", 0, NONE))

    out += [
        OBDCommand("PIDS_9A", "Supported PIDs [01-20]", "0900", 5, PID),
        OBDCommand("VIN_MESSAGE_COUNT", "VIN Message Count", "0901", 2, COUNT),
        OBDCommand("VIN", "Vehicle Identification Number", "0902", 0, ENCODED_STRING),
        OBDCommand("CALIBRATION_ID_MESSAGE_COUNT", "Calibration ID message count for PID 04", "0903", 2, COUNT),
        OBDCommand("CALIBRATION_ID", "Calibration ID", "0904", 0, ENCODED_STRING),
        OBDCommand("CVN_MESSAGE_COUNT", "CVN Message Count for PID 06", "0905", 2, COUNT),
        OBDCommand("CVN", "Calibration Verification Numbers", "0906", 0, CVN),
    ]

    out.append(OBDCommand("GET_PERMANENT_DTC", "Get Permanent DTCs", "0A", 0, DTC))
    return tuple(out)


class Commands:
    """Immutable lookup over the catalog table."""

    def __init__(self, table: Tuple[OBDCommand, ...]):
        self._table = table
        self._by_name: Dict[str, OBDCommand] = {c.name: c for c in table}
        self._by_command: Dict[str, OBDCommand] = {c.command: c for c in table}
        modes: Dict[str, List[OBDCommand]] = {}
        for c in table:
            modes.setdefault(c.mode or "AT", []).append(c)
        self._by_mode: Dict[str, Tuple[OBDCommand, ...]] = {k: tuple(v) for k, v in modes.items()}

    def __getattr__(self, name: str) -> OBDCommand:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._by_name[name]
        except KeyError:
            raise AttributeError(f"no OBD command named {name!r}") from None

    def __getitem__(self, key: str) -> OBDCommand:
        found = self.get(key)
        if found is None:
            raise KeyError(key)
        return found

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None

    def __iter__(self) -> Iterator[OBDCommand]:
        return iter(self._table)

    def __len__(self) -> int:
        return len(self._table)

    def get(self, key: str, default: Optional[OBDCommand] = None) -> Optional[OBDCommand]:
        k = (key or "").strip().upper().replace(" ", "")
        return self._by_command.get(k) or self._by_name.get(k) or default

    def by_mode(self, mode: Union[str, int]) -> Tuple[OBDCommand, ...]:
        key = f"{mode:02X}" if isinstance(mode, int) else mode.upper()
        return self._by_mode.get(key, ())

    def pid_getters(self) -> Tuple[OBDCommand, ...]:
        """Supported-PID bitmap commands (0100, 0120, 0140, 0600..., 0900)."""
        return tuple(c for c in self._table if c.decoder.rule is DecodeRule.PID and c.mode != "02")


@functools.lru_cache(maxsize=None)
def get_commands() -> Commands:
    return Commands(_build())


def __getattr__(name: str):
    # module-level `commands` is built on first access
    if name == "commands":
        return get_commands()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
