# elmobd/elm/errors.py
from __future__ import annotations

from enum import Enum
from typing import List, Optional, Sequence


class OBDError(Exception):
    """Base exception for the elmobd package."""


class CommunicationError(OBDError):
    """Transport-level failure (write/read, port closed, socket reset)."""

    def __init__(self, message: str, *, operation: Optional[str] = None, cause: Exception | None = None):
        super().__init__(message)
        self.operation = operation
        self.cause = cause

    def __str__(self) -> str:
        base = super().__str__()
        if self.operation:
            base += f" [op={self.operation}]"
        return base


class DeviceDisconnectedError(CommunicationError):
    pass


class AdapterConnectionError(OBDError):
    """Connecting to (or initializing) the adapter failed."""

    def __init__(self, message: str, *, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause

    def __str__(self) -> str:
        base = super().__str__()
        if self.cause is not None:
            base += f": {self.cause}"
        return base


class AdapterSetupError(OBDError):
    """An AT setup command never answered with the affirmative marker."""

    def __init__(self, command: str, lines: Sequence[str] = (), *, cause: Exception | None = None):
        self.command = command
        self.lines = list(lines)
        self.cause = cause
        super().__init__(f"Adapter rejected {command!r}")

    def __str__(self) -> str:
        base = super().__str__()
        if self.lines:
            base += f" [lines={self.lines[:3]}]"
        if self.cause is not None:
            base += f" [cause={self.cause}]"
        return base


class OBDTimeoutError(OBDError):
    """An awaitable adapter operation lost its race against the timer."""

    def __init__(self, operation: str, timeout: float):
        self.operation = operation
        self.timeout = timeout
        super().__init__(f"Timed out after {timeout:.2f}s waiting for {operation!r}")


class CommandFailedError(OBDError):
    def __init__(self, command: str, cause: Exception | None = None, *, attempts: int = 0):
        self.command = command
        self.cause = cause
        self.attempts = attempts
        msg = f"Command {command!r} failed"
        if attempts:
            msg += f" after {attempts} attempt(s)"
        if cause is not None:
            msg += f": {cause}"
        super().__init__(msg)


class ProtocolNegotiationError(OBDError):
    """No adapter/vehicle protocol found."""

    def __init__(self, tried: Sequence[object] = ()):
        self.tried = list(tried)
        names = ", ".join(str(getattr(p, "description", p)) for p in self.tried)
        super().__init__(f"No vehicle protocol responded (tried: {names or 'none'})")


class NotConnectedError(OBDError):
    pass


class DecodeFailure(Enum):
    UNSUPPORTED_DECODER = "unsupported decoder"
    PAYLOAD_TOO_SHORT = "payload too short"
    OUT_OF_DOMAIN = "value outside defined domain"
    NO_DATA = "no data"
    PID_MISMATCH = "response PID does not match request"


class DecodeError(OBDError):
    """Decoding one PID failed. Never raised for a whole batch."""

    def __init__(self, reason: DecodeFailure, *, command: Optional[str] = None, detail: str = ""):
        self.reason = reason
        self.command = command
        self.detail = detail
        parts: List[str] = [reason.value]
        if command:
            parts.insert(0, command)
        if detail:
            parts.append(detail)
        super().__init__(": ".join(parts))

    def for_command(self, command: str) -> "DecodeError":
        if self.command == command:
            return self
        return DecodeError(self.reason, command=command, detail=self.detail)
