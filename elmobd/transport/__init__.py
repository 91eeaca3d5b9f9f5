# elmobd/transport/__init__.py
from .base import DeviceInfo, Transport, split_response
from .mock import MockTransport
from .tcp import TcpTransport

__all__ = ["DeviceInfo", "Transport", "split_response", "MockTransport", "TcpTransport"]
