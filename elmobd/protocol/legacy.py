"""
Legacy (J1850 / ISO 9141-2 / ISO 14230-4) line parsing.

With headers on, each line is one complete message:

    48 6B 10 41 0C 1A F8 C4
    ^^^^^^^^ ^^^^^^^^^^^ ^^
    header   data        checksum

The third header byte is the responding ECU address.
"""

from __future__ import annotations

import logging
from typing import List

from .message import Message, NO_HEADER_ECU
from .normalize import compact_hex, hex_to_bytes, is_noise

logger = logging.getLogger(__name__)

HEADER_BYTES = 3
# header + at least one data byte + checksum
MIN_FRAME_BYTES = HEADER_BYTES + 2


def parse_legacy_lines(lines: List[str], headers_on: bool = True) -> List[Message]:
    messages: List[Message] = []
    for raw in lines or []:
        line = (raw or "").strip()
        if not line or is_noise(line):
            continue

        compact = compact_hex(line)
        frame = hex_to_bytes(compact) if compact else None
        if frame is None:
            logger.debug("dropping malformed legacy line %r", line)
            continue

        if not headers_on:
            messages.append(Message(NO_HEADER_ECU, frame))
            continue

        if len(frame) < MIN_FRAME_BYTES:
            logger.debug("dropping short legacy frame %r", line)
            continue

        # checksum already validated by the adapter
        ecu = f"{frame[2]:02X}"
        messages.append(Message(ecu, bytes(frame[HEADER_BYTES:-1])))
    return messages
