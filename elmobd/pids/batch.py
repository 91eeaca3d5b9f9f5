"""
Single-command decode and batched mode 01 extraction.

A batched request "010C0D" is answered with one concatenated stream
"41 0C 1A F8 0D 32": the stream is walked left to right, one declared width
per requested PID, each chunk starting with that PID's echo byte.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, TypeVar

from ..dtc import STATUS_BY_MODE, DTCStatus
from ..elm.errors import DecodeError, DecodeFailure
from ..protocol.message import Message
from .catalog import OBDCommand
from .decoders import DecodeRule
from .units import MeasurementSystem

logger = logging.getLogger(__name__)

MAX_PIDS_PER_REQUEST = 6
T = TypeVar("T")


class PIDResults(Dict[OBDCommand, Any]):
    """PID -> decoded value, plus per-PID failures in `.errors`."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.errors: Dict[OBDCommand, DecodeError] = {}

    def merge(self, other: "PIDResults") -> None:
        """Fill in values not already present; a value clears an earlier error."""
        for cmd, value in other.items():
            if cmd in self:
                continue
            self[cmd] = value
            self.errors.pop(cmd, None)
        for cmd, err in other.errors.items():
            if cmd not in self:
                self.errors[cmd] = err

    def by_name(self) -> Dict[str, Any]:
        return {cmd.name: value for cmd, value in self.items()}


def chunked(items: Sequence[T], size: int = MAX_PIDS_PER_REQUEST) -> Iterator[List[T]]:
    for i in range(0, len(items), size):
        yield list(items[i : i + size])


def build_request(cmds: Sequence[OBDCommand]) -> str:
    """'01' + concatenated PID bytes, e.g. [RPM, SPEED] -> '010C0D'."""
    if not cmds:
        raise ValueError("empty PID batch")
    modes = {c.mode for c in cmds}
    if len(modes) != 1:
        raise ValueError(f"cannot batch PIDs from different modes: {sorted(m or 'AT' for m in modes)}")
    mode = modes.pop()
    return f"{mode}" + "".join(c.pid_hex for c in cmds)


def response_mode(cmd: OBDCommand) -> Optional[int]:
    return None if cmd.mode is None else int(cmd.mode, 16) + 0x40


def command_payload(cmd: OBDCommand, data: bytes) -> bytes:
    """
    Strip the response framing in front of one command's value:
    mode byte, PID echo, and the frame number for freeze-frame reads.
    Mode 05/06 test blocks keep their leading MID/TID. Fixed-width
    commands are cut to their declared width.
    """
    expected = response_mode(cmd)
    if not data:
        raise DecodeError(DecodeFailure.NO_DATA, command=cmd.command)
    if expected is not None and data[0] != expected:
        raise DecodeError(
            DecodeFailure.PID_MISMATCH,
            command=cmd.command,
            detail=f"response mode 0x{data[0]:02X}",
        )
    rest = bytes(data[1:])
    if cmd.decoder.rule is DecodeRule.MONITOR or cmd.pid is None:
        return rest
    if not rest or rest[0] != cmd.pid:
        raise DecodeError(DecodeFailure.PID_MISMATCH, command=cmd.command)
    rest = rest[1:]
    if cmd.mode == "02":
        rest = rest[1:]
    if cmd.bytes > 0:
        width = cmd.bytes - 1
        if len(rest) < width:
            raise DecodeError(
                DecodeFailure.PAYLOAD_TOO_SHORT,
                command=cmd.command,
                detail=f"need {width} byte(s), got {len(rest)}",
            )
        # headerless CAN replies keep the frame padding
        rest = rest[:width]
    return rest


def decode_message(
    cmd: OBDCommand,
    msg: Message,
    system: MeasurementSystem = MeasurementSystem.METRIC,
) -> Any:
    payload = command_payload(cmd, msg.data)
    status = STATUS_BY_MODE.get(cmd.mode or "", DTCStatus.CONFIRMED)
    try:
        return cmd.decoder.decode(payload, system, status=status)
    except DecodeError as exc:
        raise exc.for_command(cmd.command) from None


def extract_batch(
    cmds: Sequence[OBDCommand],
    data: bytes,
    system: MeasurementSystem = MeasurementSystem.METRIC,
) -> PIDResults:
    """
    Walk one concatenated response in request order.

    A PID whose echo byte is not next in the stream (the ECU left it out)
    gets PID_MISMATCH and consumes nothing; a PID whose width would overrun
    the stream gets PAYLOAD_TOO_SHORT. Neither affects its siblings.
    """
    results = PIDResults()
    if not cmds:
        return results

    expected = response_mode(cmds[0])
    if not data or data[0] != expected:
        for cmd in cmds:
            results.errors[cmd] = DecodeError(DecodeFailure.NO_DATA, command=cmd.command)
        return results

    i = 1
    for cmd in cmds:
        width = cmd.bytes
        if width <= 0:
            results.errors[cmd] = DecodeError(
                DecodeFailure.UNSUPPORTED_DECODER, command=cmd.command, detail="variable length"
            )
            continue
        if i >= len(data):
            results.errors[cmd] = DecodeError(DecodeFailure.NO_DATA, command=cmd.command)
            continue
        if data[i] != cmd.pid:
            results.errors[cmd] = DecodeError(
                DecodeFailure.PID_MISMATCH,
                command=cmd.command,
                detail=f"found 0x{data[i]:02X} at offset {i}",
            )
            continue
        if i + width > len(data):
            results.errors[cmd] = DecodeError(
                DecodeFailure.PAYLOAD_TOO_SHORT,
                command=cmd.command,
                detail=f"need {width} byte(s), {len(data) - i} left",
            )
            continue

        chunk = bytes(data[i + 1 : i + width])
        i += width
        try:
            results[cmd] = cmd.decoder.decode(chunk, system)
        except DecodeError as exc:
            logger.debug("decode failed for %s: %s", cmd.command, exc)
            results.errors[cmd] = exc.for_command(cmd.command)
    return results


def extract_from_messages(
    cmds: Sequence[OBDCommand],
    messages: Iterable[Message],
    system: MeasurementSystem = MeasurementSystem.METRIC,
) -> PIDResults:
    """Merge per-ECU batch walks; the first ECU to supply a PID wins."""
    merged = PIDResults()
    seen = False
    for msg in messages:
        seen = True
        merged.merge(extract_batch(cmds, msg.data, system))
    if not seen:
        for cmd in cmds:
            merged.errors[cmd] = DecodeError(DecodeFailure.NO_DATA, command=cmd.command)
    return merged
