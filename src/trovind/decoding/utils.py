"""Decoding utilities: ABI word access and typed parsers.

Integer words are range-checked against their declared width, so a payload
that does not match the event schema fails loudly instead of decoding to a
silently wrong amount.
"""

from __future__ import annotations

from typing import Any

_ZERO_WORD = b"\x00" * 32


def word_at(data: bytes, i: int) -> bytes:
    """Return the i-th 32-byte ABI word (zero-padded if out-of-range)."""
    start = 32 * i
    return data[start : start + 32] if start < len(data) else _ZERO_WORD


def hex_to_bytes(data_hex: str) -> bytes:
    """Decode a (optionally 0x-prefixed) hex payload; raises ValueError on bad hex."""
    h = data_hex[2:] if data_hex[:2].lower() == "0x" else data_hex
    return bytes.fromhex(h)


def _int_width(typ: str) -> tuple[bool, int] | None:
    """(signed, bits) for `uintN` / `intN` types, else None."""
    signed = typ.startswith("int")
    if not signed and not typ.startswith("uint"):
        return None
    suffix = typ[3:] if signed else typ[4:]
    if suffix and not suffix.isdigit():
        return None  # array type
    return signed, int(suffix) if suffix else 256


def _to_int(raw: bytes, typ: str, signed: bool, bits: int) -> int:
    v = int.from_bytes(raw, "big", signed=signed)
    lo, hi = (-(2 ** (bits - 1)), 2 ** (bits - 1)) if signed else (0, 2**bits)
    if not lo <= v < hi:
        raise ValueError(f"value does not fit {typ}")
    return v


def parse_topic(topic_hex: str, typ: str) -> Any:
    """Parse one indexed topic according to the declared type.

    Dynamic types (string, bytes, arrays) are indexed by hash; the raw hex is
    returned for those.
    """
    h = topic_hex.lower()
    if typ == "address":
        return "0x" + h[-40:]
    width = _int_width(typ)
    if width is not None:
        return _to_int(hex_to_bytes(h).rjust(32, b"\x00"), typ, *width)
    return h


def parse_data_word(word: bytes, typ: str) -> Any:
    """Parse one ABI word from data according to the declared type."""
    if typ == "address":
        return "0x" + word[-20:].hex()
    if typ == "bool":
        return any(word)
    width = _int_width(typ)
    if width is not None:
        return _to_int(word, typ, *width)
    return "0x" + word.hex()
