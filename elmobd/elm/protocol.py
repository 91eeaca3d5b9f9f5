# elmobd/elm/protocol.py
from __future__ import annotations

import logging
import re
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from ..protocol.can import parse_can_lines
from ..protocol.legacy import parse_legacy_lines
from ..protocol.message import Message
from .errors import CommandFailedError, OBDTimeoutError, ProtocolNegotiationError
from .timeout import run_with_timeout

if TYPE_CHECKING:
    from .elm327 import ELM327

logger = logging.getLogger(__name__)


class OBDProtocol(Enum):
    """ELM327 protocol selector: (ATSP id, description, CAN id width or 0)."""

    AUTO = ("0", "Automatic", 0)
    SAE_J1850_PWM = ("1", "SAE J1850 PWM", 0)
    SAE_J1850_VPW = ("2", "SAE J1850 VPW", 0)
    ISO_9141_2 = ("3", "ISO 9141-2", 0)
    ISO_14230_4_KWP_5BAUD = ("4", "ISO 14230-4 KWP (5 baud init)", 0)
    ISO_14230_4_KWP_FAST = ("5", "ISO 14230-4 KWP (fast init)", 0)
    ISO_15765_4_11BIT_500K = ("6", "ISO 15765-4 (CAN 11/500)", 11)
    ISO_15765_4_29BIT_500K = ("7", "ISO 15765-4 (CAN 29/500)", 29)
    ISO_15765_4_11BIT_250K = ("8", "ISO 15765-4 (CAN 11/250)", 11)
    ISO_15765_4_29BIT_250K = ("9", "ISO 15765-4 (CAN 29/250)", 29)
    SAE_J1939 = ("A", "SAE J1939 (CAN 29/250)", 29)

    def __init__(self, elm_id: str, description: str, id_bits: int):
        self.elm_id = elm_id
        self.description = description
        self.id_bits = id_bits

    @property
    def command(self) -> str:
        return f"ATSP{self.elm_id}"

    @property
    def is_can(self) -> bool:
        return self.id_bits > 0

    @property
    def is_legacy(self) -> bool:
        return self is not OBDProtocol.AUTO and not self.is_can

    @classmethod
    def from_elm_id(cls, elm_id: str) -> Optional["OBDProtocol"]:
        key = (elm_id or "").strip().upper()
        for proto in cls:
            if proto.elm_id == key:
                return proto
        return None

    def parse(self, lines: List[str], headers_on: bool = True) -> List[Message]:
        if self.is_legacy:
            return parse_legacy_lines(lines, headers_on=headers_on)
        # AUTO has not locked onto a bus yet; adapters nearly always land on 11-bit CAN
        return parse_can_lines(lines, id_bits=self.id_bits or 11)

    def __str__(self) -> str:
        return self.description


# Legacy buses are never guessed: their init is stateful and slow to retry.
CAN_PRIORITY = (
    OBDProtocol.ISO_15765_4_11BIT_500K,
    OBDProtocol.ISO_15765_4_29BIT_500K,
    OBDProtocol.ISO_15765_4_11BIT_250K,
    OBDProtocol.ISO_15765_4_29BIT_250K,
    OBDProtocol.SAE_J1939,
)

PROBE_COMMAND = "0100"


def negotiation_order(preferred: Optional[OBDProtocol] = None) -> List[OBDProtocol]:
    order: List[OBDProtocol] = []
    if preferred is not None and preferred is not OBDProtocol.AUTO:
        order.append(preferred)
    order.extend(p for p in CAN_PRIORITY if p is not preferred)
    return order


def is_probe_reply(messages: List[Message]) -> bool:
    """A well-formed 0100 answer: 41 00 plus the 4 byte bitmap."""
    return any(len(m.data) >= 6 and m.data[0] == 0x41 and m.data[1] == 0x00 for m in messages)


async def probe_protocol(elm: "ELM327", proto: OBDProtocol) -> bool:
    await elm.send(proto.command, retries=1, reset_on_failure=False)
    lines = await elm.send(PROBE_COMMAND, retries=1, reset_on_failure=False)
    return is_probe_reply(proto.parse(lines, headers_on=elm.headers_on))


async def negotiate_protocol(
    elm: "ELM327",
    preferred: Optional[OBDProtocol] = None,
    *,
    attempt_timeout_s: Optional[float] = None,
) -> OBDProtocol:
    """
    Preferred protocol first, then the CAN variants in priority order.
    Each candidate gets one bounded attempt; a failed candidate is not
    revisited.
    """
    # late-reply resync plus the ATSP and 0100 exchanges
    wait_s = attempt_timeout_s if attempt_timeout_s is not None else max(elm.timeout * 3, 2.0)
    tried: List[OBDProtocol] = []

    for proto in negotiation_order(preferred):
        tried.append(proto)
        logger.info("trying protocol %s (%s)", proto.elm_id, proto.description)
        try:
            ok = await run_with_timeout(
                probe_protocol(elm, proto),
                wait_s,
                operation=f"probe {proto.command}",
                on_timeout=elm.abandon_exchange,
            )
        except (OBDTimeoutError, CommandFailedError) as e:
            logger.info("protocol %s failed: %s", proto.elm_id, e)
            continue
        if ok:
            logger.info("locked protocol %s", proto.description)
            return proto
        logger.debug("protocol %s: probe got no 41 00 reply", proto.elm_id)

    raise ProtocolNegotiationError(tried)


async def get_protocol(elm: "ELM327") -> Optional[OBDProtocol]:
    """Ask the adapter which protocol it is on (ATDPN; 'A6' means auto-selected 6)."""
    lines = await elm.send("ATDPN", retries=1, reset_on_failure=False)
    for ln in lines:
        m = re.fullmatch(r"A?([0-9A-C])", ln.strip().upper())
        if m:
            return OBDProtocol.from_elm_id(m.group(1))
    return None
