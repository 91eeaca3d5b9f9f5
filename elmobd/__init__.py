# elmobd/__init__.py
from .elm import (
    ELM327,
    OBDProtocol,
    OBDError,
    CommunicationError,
    DeviceDisconnectedError,
    AdapterConnectionError,
    OBDTimeoutError,
    CommandFailedError,
    ProtocolNegotiationError,
    NotConnectedError,
    DecodeError,
    DecodeFailure,
)
from .state import ConnectionState, StateChannel
from .config import ConnectionType
from .dtc import DTCStatus, Status, TroubleCode
from .pids import Measurement, MeasurementSystem, OBDCommand, PIDResults, Unit, get_commands
from .pid_list import PIDRequestList
from .obd2 import (
    OBDService,
    OBDInfo,
    ContinuousUpdates,
    ScannerError,
    ScanFailedError,
    ClearFailedError,
)

__all__ = [
    "ELM327",
    "OBDProtocol",
    "OBDError",
    "CommunicationError",
    "DeviceDisconnectedError",
    "AdapterConnectionError",
    "OBDTimeoutError",
    "CommandFailedError",
    "ProtocolNegotiationError",
    "NotConnectedError",
    "DecodeError",
    "DecodeFailure",
    "ConnectionState",
    "StateChannel",
    "ConnectionType",
    "DTCStatus",
    "Status",
    "TroubleCode",
    "Measurement",
    "MeasurementSystem",
    "OBDCommand",
    "PIDResults",
    "Unit",
    "get_commands",
    "PIDRequestList",
    "OBDService",
    "OBDInfo",
    "ContinuousUpdates",
    "ScannerError",
    "ScanFailedError",
    "ClearFailedError",
]
__version__ = "0.1.0"
