# elmobd/elm/__init__.py
from .errors import (
    OBDError,
    CommunicationError,
    DeviceDisconnectedError,
    AdapterConnectionError,
    AdapterSetupError,
    OBDTimeoutError,
    CommandFailedError,
    ProtocolNegotiationError,
    NotConnectedError,
    DecodeError,
    DecodeFailure,
)
from .protocol import OBDProtocol
from .elm327 import ELM327

__all__ = [
    "ELM327",
    "OBDProtocol",
    "OBDError",
    "CommunicationError",
    "DeviceDisconnectedError",
    "AdapterConnectionError",
    "AdapterSetupError",
    "OBDTimeoutError",
    "CommandFailedError",
    "ProtocolNegotiationError",
    "NotConnectedError",
    "DecodeError",
    "DecodeFailure",
]
