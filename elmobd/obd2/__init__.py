# elmobd/obd2/__init__.py
from .base import BaseScanner, ScannerError, ScanFailedError, ClearFailedError
from .models import OBDInfo
from .updates import ContinuousUpdates
from .scanner import OBDService, create_transport

__all__ = [
    "BaseScanner",
    "ScannerError",
    "ScanFailedError",
    "ClearFailedError",
    "OBDInfo",
    "ContinuousUpdates",
    "OBDService",
    "create_transport",
]
