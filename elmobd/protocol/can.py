"""
ISO 15765-4 (ISO-TP) reassembly of ELM327 response lines.

Headered lines (ATH1) carry the arbitration ID followed by the PCI byte:

    7E8 10 14 49 02 01 31 44 34      first frame, 0x014 bytes total
    7E8 21 47 50 30 30 52 35 35      consecutive frame, seq 1

Headerless lines (ATH0) come either as bare data ("41 0C 1A F8") or in the
adapter's indexed multi-frame layout ("014" / "0: ..." / "1: ...").
Anything malformed is dropped for that message only.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .message import Message, NO_HEADER_ECU
from .normalize import compact_hex, hex_to_bytes, is_noise

logger = logging.getLogger(__name__)

FRAME_SINGLE = 0x0
FRAME_FIRST = 0x1
FRAME_CONSECUTIVE = 0x2
FRAME_FLOW_CONTROL = 0x3

INDEXED_RE = re.compile(r"^([0-9A-Fa-f]):\s*(.*)$")

# 29-bit OBD IDs start with priority 0x18 (18 DA F1 xx / 18 DB 33 F1)
_29BIT_PRIORITY = "18"


@dataclass
class _Pending:
    length: int
    data: bytearray
    next_seq: int = 1
    frames: int = 1


@dataclass
class _Indexed:
    length: Optional[int] = None
    data: bytearray = field(default_factory=bytearray)
    next_index: int = 0
    frames: int = 0
    broken: bool = False


def split_arbitration_id(compact: str, id_bits: int) -> Optional[Tuple[str, bytes]]:
    """Split a compact hex line into (arbitration ID, frame bytes)."""
    id_len = 3 if id_bits == 11 else 8
    if len(compact) <= id_len:
        return None
    frame = hex_to_bytes(compact[id_len:])
    if not frame:
        return None
    return compact[:id_len], frame


def looks_headered(compact: str, id_bits: int) -> bool:
    if id_bits == 11:
        # 3-digit ID + whole bytes
        return len(compact) % 2 == 1 and len(compact) >= 5
    return len(compact) >= 10 and compact.startswith(_29BIT_PRIORITY)


def parse_can_lines(lines: List[str], id_bits: int = 11) -> List[Message]:
    messages: List[Message] = []
    pending: Dict[str, _Pending] = {}
    indexed = _Indexed()
    saw_indexed = False

    lines = list(lines or [])
    for i, raw in enumerate(lines):
        line = (raw or "").strip()
        if not line or is_noise(line):
            continue

        m = INDEXED_RE.match(line)
        if m:
            saw_indexed = True
            _feed_indexed(indexed, int(m.group(1), 16), m.group(2))
            if _indexed_complete(indexed):
                messages.append(_emit_indexed(indexed))
                indexed = _Indexed()
                saw_indexed = False
            continue

        compact = compact_hex(line)
        if compact is None:
            logger.debug("dropping non-hex line %r", line)
            continue

        # "014": total length announcement for the indexed layout
        if len(compact) <= 3 and _announces_indexed(lines, i):
            if saw_indexed or indexed.length is not None:
                indexed = _Indexed()
            indexed.length = int(compact, 16)
            saw_indexed = True
            continue

        if looks_headered(compact, id_bits):
            parsed = split_arbitration_id(compact, id_bits)
            if parsed is None:
                logger.debug("dropping malformed CAN line %r", line)
                continue
            arb_id, frame = parsed
            msg = _feed_frame(pending, arb_id, frame)
            if msg is not None:
                messages.append(msg)
            continue

        data = hex_to_bytes(compact)
        if data is None:
            logger.debug("dropping odd-length line %r", line)
            continue
        messages.append(Message(NO_HEADER_ECU, data))

    if saw_indexed and indexed.length is None and indexed.data and not indexed.broken:
        # no length announcement: everything received is the message
        messages.append(_emit_indexed(indexed))

    for arb_id, p in pending.items():
        logger.debug("dropping incomplete ISO-TP message from %s (%d/%d bytes)", arb_id, len(p.data), p.length)

    return messages


def _announces_indexed(lines: List[str], i: int) -> bool:
    """True when the next meaningful line after `i` is an indexed frame."""
    for raw in lines[i + 1 :]:
        line = (raw or "").strip()
        if not line or is_noise(line):
            continue
        return INDEXED_RE.match(line) is not None
    return False


def _feed_frame(pending: Dict[str, _Pending], arb_id: str, frame: bytes) -> Optional[Message]:
    pci = frame[0]
    frame_type = pci >> 4

    if frame_type == FRAME_SINGLE:
        length = pci & 0x0F
        if length == 0 or length > 7 or length > len(frame) - 1:
            logger.debug("dropping single frame from %s: bad length %d", arb_id, length)
            return None
        return Message(arb_id, bytes(frame[1 : 1 + length]))

    if frame_type == FRAME_FIRST:
        if len(frame) < 2:
            return None
        length = ((pci & 0x0F) << 8) | frame[1]
        if length == 0:
            return None
        p = _Pending(length=length, data=bytearray(frame[2:]))
        if len(p.data) >= length:
            return Message(arb_id, bytes(p.data[:length]))
        pending[arb_id] = p
        return None

    if frame_type == FRAME_CONSECUTIVE:
        p = pending.get(arb_id)
        if p is None:
            logger.debug("consecutive frame from %s without first frame", arb_id)
            return None
        seq = pci & 0x0F
        if seq != p.next_seq:
            logger.debug("sequence mismatch from %s: got %X expected %X", arb_id, seq, p.next_seq)
            del pending[arb_id]
            return None
        p.data.extend(frame[1:])
        p.next_seq = (p.next_seq + 1) & 0x0F
        p.frames += 1
        if len(p.data) >= p.length:
            del pending[arb_id]
            return Message(arb_id, bytes(p.data[: p.length]), frames=p.frames)
        return None

    # flow control and unknown PCI types carry no payload for us
    return None


def _feed_indexed(state: _Indexed, index: int, rest: str) -> None:
    if state.broken:
        return
    compact = compact_hex(rest)
    chunk = hex_to_bytes(compact) if compact else None
    if chunk is None or index != state.next_index:
        logger.debug("dropping indexed multi-frame message at frame %X", index)
        state.broken = True
        return
    state.data.extend(chunk)
    state.next_index = (state.next_index + 1) & 0x0F
    state.frames += 1


def _indexed_complete(state: _Indexed) -> bool:
    return not state.broken and state.length is not None and len(state.data) >= state.length


def _emit_indexed(state: _Indexed) -> Message:
    data = bytes(state.data if state.length is None else state.data[: state.length])
    return Message(NO_HEADER_ECU, data, frames=state.frames)
