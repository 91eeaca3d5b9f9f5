# elmobd/protocol/__init__.py
from .message import Message, NO_HEADER_ECU, group_messages
from .normalize import compact_hex, hex_to_bytes, is_noise
from .can import parse_can_lines
from .legacy import parse_legacy_lines
from .ascii import extract_ascii, is_valid_vin

__all__ = [
    "Message",
    "NO_HEADER_ECU",
    "group_messages",
    "compact_hex",
    "hex_to_bytes",
    "is_noise",
    "parse_can_lines",
    "parse_legacy_lines",
    "extract_ascii",
    "is_valid_vin",
]
