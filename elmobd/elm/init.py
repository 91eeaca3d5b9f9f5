# elmobd/elm/init.py
from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, List, Optional

from .errors import AdapterSetupError, CommandFailedError

if TYPE_CHECKING:
    from .elm327 import ELM327

logger = logging.getLogger(__name__)

# (command, what it does); each must answer OK
SETUP_COMMANDS = (
    ("ATE0", "echo off"),
    ("ATL0", "linefeeds off"),
    ("ATH1", "headers on"),
    ("ATAT1", "adaptive timing on"),
)


def extract_version(response: str) -> Optional[str]:
    s = (response or "").strip()
    if not s:
        return None
    m = re.search(r"(ELM327\s*v?\s*[\w\.]+)", s, re.IGNORECASE)
    if m:
        return m.group(1).strip()
    return s[:40].strip() if s else None


def is_ok(lines: List[str]) -> bool:
    # with echo still on the first line is the command itself
    return any(ln.strip().upper().endswith("OK") for ln in lines)


async def reset_adapter(elm: "ELM327") -> str:
    try:
        lines = await elm.send("ATZ", retries=2, timeout=max(elm.timeout, 2.0), reset_on_failure=False)
    except CommandFailedError as e:
        raise AdapterSetupError("ATZ", cause=e) from e
    version = extract_version("\n".join(ln for ln in lines if ln.upper() != "ATZ"))
    elm.elm_version = version or "unknown"
    logger.info("adapter reset: %s", elm.elm_version)
    return elm.elm_version


async def initialize_elm(elm: "ELM327", *, retries: int = 2) -> None:
    """
    Reset the adapter and apply the fixed setup sequence.
    Raises AdapterSetupError on the first directive not answered with OK.
    """
    await reset_adapter(elm)
    for command, label in SETUP_COMMANDS:
        try:
            lines = await elm.send(command, retries=retries, reset_on_failure=False)
        except CommandFailedError as e:
            raise AdapterSetupError(command, cause=e) from e
        if not is_ok(lines):
            raise AdapterSetupError(command, lines)
        logger.debug("%s (%s) OK", command, label)
    elm.headers_on = True
