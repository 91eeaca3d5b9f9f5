# elmobd/pids/__init__.py
from .units import Measurement, MeasurementSystem, Unit, UAS_IDS
from .decoders import Decoder, DecodeRule, Monitor, MonitorTest
from .catalog import Commands, OBDCommand, get_commands
from .batch import (
    MAX_PIDS_PER_REQUEST,
    PIDResults,
    build_request,
    chunked,
    decode_message,
    extract_batch,
    extract_from_messages,
)

__all__ = [
    "Measurement",
    "MeasurementSystem",
    "Unit",
    "UAS_IDS",
    "Decoder",
    "DecodeRule",
    "Monitor",
    "MonitorTest",
    "Commands",
    "OBDCommand",
    "get_commands",
    "MAX_PIDS_PER_REQUEST",
    "PIDResults",
    "build_request",
    "chunked",
    "decode_message",
    "extract_batch",
    "extract_from_messages",
]
