from __future__ import annotations

import re

VIN_RE = re.compile(r"^[A-HJ-NPR-Z0-9]{17}$")  # no I, O, Q


def extract_ascii(data: bytes) -> str:
    """Printable characters only; padding and control bytes are skipped."""
    return "".join(chr(b) for b in data or b"" if 32 <= b <= 126)


def is_valid_vin(vin: str) -> bool:
    vin = (vin or "").strip().upper()
    return bool(VIN_RE.match(vin))
