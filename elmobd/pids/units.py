"""
Units, measurements and the SAE J1979 Unit-and-Scaling (UAS) table.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, NamedTuple


class MeasurementSystem(str, Enum):
    METRIC = "metric"
    IMPERIAL = "imperial"


class Unit(str, Enum):
    NONE = ""
    COUNT = "count"
    RATIO = "ratio"
    PERCENT = "%"
    RPM = "rpm"
    KPH = "km/h"
    MPH = "mph"
    KILOMETER = "km"
    MILE = "mi"
    INCH = "in"
    CELSIUS = "°C"
    FAHRENHEIT = "°F"
    KPA = "kPa"
    PA = "Pa"
    PSI = "psi"
    PA_PER_SEC = "Pa/s"
    VOLT = "V"
    MILLIVOLT = "mV"
    MILLIVOLT_PER_MS = "mV/ms"
    MILLIVOLT_PER_SEC = "mV/s"
    AMP = "A"
    MILLIAMP = "mA"
    MICROAMP = "µA"
    OHM = "Ω"
    MILLIOHM = "mΩ"
    KILOOHM = "kΩ"
    MICROSECOND = "µs"
    MILLISECOND = "ms"
    SECOND = "s"
    MINUTE = "min"
    HERTZ = "Hz"
    MILLIHERTZ = "mHz"
    KILOHERTZ = "kHz"
    DEGREE = "°"
    GRAM = "g"
    GRAMS_PER_SEC = "g/s"
    POUNDS_PER_MIN = "lb/min"
    GRAMS_PER_CYLINDER = "g/cyl"
    MILLIGRAMS_PER_STROKE = "mg/stroke"
    KG_PER_HOUR = "kg/h"
    LITER = "L"
    LITERS_PER_HOUR = "L/h"
    GALLONS_PER_HOUR = "gal/h"
    SQUARE_MM = "mm²"
    PPM = "ppm"


@dataclass(frozen=True)
class Measurement:
    value: float
    unit: Unit

    def __str__(self) -> str:
        if self.unit is Unit.NONE:
            return f"{self.value:g}"
        return f"{self.value:g} {self.unit.value}"


# metric unit -> (imperial unit, converter)
_IMPERIAL = {
    Unit.CELSIUS: (Unit.FAHRENHEIT, lambda v: v * 9.0 / 5.0 + 32.0),
    Unit.KPH: (Unit.MPH, lambda v: v * 0.621371),
    Unit.KILOMETER: (Unit.MILE, lambda v: v * 0.621371),
    Unit.KPA: (Unit.PSI, lambda v: v * 0.145038),
    Unit.PA: (Unit.PSI, lambda v: v * 0.000145038),
    Unit.GRAMS_PER_SEC: (Unit.POUNDS_PER_MIN, lambda v: v * 0.132277),
    Unit.LITERS_PER_HOUR: (Unit.GALLONS_PER_HOUR, lambda v: v * 0.264172),
}


def measurement(value: float, unit: Unit, system: MeasurementSystem = MeasurementSystem.METRIC) -> Measurement:
    if system is MeasurementSystem.IMPERIAL and unit in _IMPERIAL:
        new_unit, convert = _IMPERIAL[unit]
        return Measurement(float(convert(value)), new_unit)
    return Measurement(float(value), unit)


class UAS(NamedTuple):
    signed: bool
    scale: float
    unit: Unit
    offset: float = 0.0

    def decode(self, data: bytes, system: MeasurementSystem = MeasurementSystem.METRIC) -> Measurement:
        raw = int.from_bytes(data, "big", signed=self.signed)
        return measurement(raw * self.scale + self.offset, self.unit, system)


UAS_IDS: Dict[int, UAS] = {
    # unsigned
    0x01: UAS(False, 1, Unit.COUNT),
    0x02: UAS(False, 0.1, Unit.COUNT),
    0x03: UAS(False, 0.01, Unit.COUNT),
    0x04: UAS(False, 0.001, Unit.COUNT),
    0x05: UAS(False, 0.0000305, Unit.COUNT),
    0x06: UAS(False, 0.000305, Unit.COUNT),
    0x07: UAS(False, 0.25, Unit.RPM),
    0x08: UAS(False, 0.01, Unit.KPH),
    0x09: UAS(False, 1, Unit.KPH),
    0x0A: UAS(False, 0.122, Unit.MILLIVOLT),
    0x0B: UAS(False, 0.001, Unit.VOLT),
    0x0C: UAS(False, 0.01, Unit.VOLT),
    0x0D: UAS(False, 0.00390625, Unit.MILLIAMP),
    0x0E: UAS(False, 0.001, Unit.AMP),
    0x0F: UAS(False, 0.01, Unit.AMP),
    0x10: UAS(False, 1, Unit.MILLISECOND),
    0x11: UAS(False, 100, Unit.MILLISECOND),
    0x12: UAS(False, 1, Unit.SECOND),
    0x13: UAS(False, 1, Unit.MILLIOHM),
    0x14: UAS(False, 1, Unit.OHM),
    0x15: UAS(False, 1, Unit.KILOOHM),
    0x16: UAS(False, 0.1, Unit.CELSIUS, -40.0),
    0x17: UAS(False, 0.01, Unit.KPA),
    0x18: UAS(False, 0.0117, Unit.KPA),
    0x19: UAS(False, 0.079, Unit.KPA),
    0x1A: UAS(False, 1, Unit.KPA),
    0x1B: UAS(False, 10, Unit.KPA),
    0x1C: UAS(False, 0.01, Unit.DEGREE),
    0x1D: UAS(False, 0.5, Unit.DEGREE),
    0x1E: UAS(False, 0.0000305, Unit.RATIO),
    0x1F: UAS(False, 0.05, Unit.RATIO),
    0x20: UAS(False, 0.00390625, Unit.RATIO),
    0x21: UAS(False, 1, Unit.MILLIHERTZ),
    0x22: UAS(False, 1, Unit.HERTZ),
    0x23: UAS(False, 1, Unit.KILOHERTZ),
    0x24: UAS(False, 1, Unit.COUNT),
    0x25: UAS(False, 1, Unit.KILOMETER),
    0x26: UAS(False, 0.1, Unit.MILLIVOLT_PER_MS),
    0x27: UAS(False, 0.01, Unit.GRAMS_PER_SEC),
    0x28: UAS(False, 1, Unit.GRAMS_PER_SEC),
    0x29: UAS(False, 0.25, Unit.PA_PER_SEC),
    0x2A: UAS(False, 0.001, Unit.KG_PER_HOUR),
    0x2B: UAS(False, 1, Unit.COUNT),
    0x2C: UAS(False, 0.01, Unit.GRAMS_PER_CYLINDER),
    0x2D: UAS(False, 0.01, Unit.MILLIGRAMS_PER_STROKE),
    0x2E: UAS(False, 1, Unit.NONE),
    0x2F: UAS(False, 0.01, Unit.PERCENT),
    0x30: UAS(False, 0.001526, Unit.PERCENT),
    0x31: UAS(False, 0.001, Unit.LITER),
    0x32: UAS(False, 0.0000305, Unit.INCH),
    0x33: UAS(False, 0.00024414, Unit.RATIO),
    0x34: UAS(False, 1, Unit.MINUTE),
    0x35: UAS(False, 10, Unit.MILLISECOND),
    0x36: UAS(False, 0.01, Unit.GRAM),
    0x37: UAS(False, 0.1, Unit.GRAM),
    0x38: UAS(False, 1, Unit.GRAM),
    0x39: UAS(False, 0.01, Unit.PERCENT, -327.68),
    0x3A: UAS(False, 0.001, Unit.GRAM),
    0x3B: UAS(False, 0.0001, Unit.GRAM),
    0x3C: UAS(False, 0.1, Unit.MICROSECOND),
    0x3D: UAS(False, 0.01, Unit.MILLIAMP),
    0x3E: UAS(False, 0.00006103516, Unit.SQUARE_MM),
    0x3F: UAS(False, 0.01, Unit.LITER),
    0x40: UAS(False, 1, Unit.PPM),
    0x41: UAS(False, 0.01, Unit.MICROAMP),
    # signed
    0x81: UAS(True, 1, Unit.COUNT),
    0x82: UAS(True, 0.1, Unit.COUNT),
    0x83: UAS(True, 0.01, Unit.COUNT),
    0x84: UAS(True, 0.001, Unit.COUNT),
    0x85: UAS(True, 0.0000305, Unit.COUNT),
    0x86: UAS(True, 0.000305, Unit.COUNT),
    0x8A: UAS(True, 0.122, Unit.MILLIVOLT),
    0x8B: UAS(True, 0.001, Unit.VOLT),
    0x8C: UAS(True, 0.01, Unit.VOLT),
    0x8D: UAS(True, 0.00390625, Unit.MILLIAMP),
    0x8E: UAS(True, 0.001, Unit.AMP),
    0x90: UAS(True, 1, Unit.MILLISECOND),
    0x96: UAS(True, 0.1, Unit.CELSIUS),
    0x99: UAS(True, 0.1, Unit.KPA),
    0x9C: UAS(True, 0.01, Unit.DEGREE),
    0x9D: UAS(True, 0.5, Unit.DEGREE),
    0xA8: UAS(True, 1, Unit.GRAMS_PER_SEC),
    0xA9: UAS(True, 0.25, Unit.PA_PER_SEC),
    0xAD: UAS(True, 0.01, Unit.MILLIGRAMS_PER_STROKE),
    0xAE: UAS(True, 0.1, Unit.MILLIGRAMS_PER_STROKE),
    0xAF: UAS(True, 0.01, Unit.PERCENT),
    0xB0: UAS(True, 0.003052, Unit.PERCENT),
    0xB1: UAS(True, 2, Unit.MILLIVOLT_PER_SEC),
    0xFC: UAS(True, 0.01, Unit.KPA),
    0xFD: UAS(True, 0.001, Unit.KPA),
    0xFE: UAS(True, 0.25, Unit.PA),
}
