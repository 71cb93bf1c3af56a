"""
Byte-order-mark detection for MetaTrader exports.

The terminal writes statements and balance exports as UTF-16 on Windows
(usually little-endian, with a BOM) while files that passed through
other tools are often plain UTF-8.  `decode_report_bytes()` picks the
codec from the first two bytes and never fails: undecodable sequences
are replaced rather than raised.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


UTF16_LE_BOM = b"\xff\xfe"
UTF16_BE_BOM = b"\xfe\xff"


@dataclass(frozen=True)
class DecodedText:
    """Decoded document text and the codec that produced it."""
    text: str
    encoding: str  # 'utf-16-le', 'utf-16-be' or 'utf-8'


def detect_encoding(raw: bytes) -> str:
    """Return the codec implied by the leading byte-order mark."""
    head = raw[:2]
    if head == UTF16_LE_BOM:
        return "utf-16-le"
    if head == UTF16_BE_BOM:
        return "utf-16-be"
    return "utf-8"


def decode_report_bytes(raw: bytes) -> DecodedText:
    """Decode a raw export buffer.

    Parameters
    ----------
    raw : bytes
        Full contents of an HTML statement or CSV export.

    Returns
    -------
    DecodedText
        The text with any UTF-16 marker removed, plus the codec name.
    """
    encoding = detect_encoding(raw)
    payload = raw[2:] if encoding != "utf-8" else raw
    return DecodedText(text=payload.decode(encoding, errors="replace"), encoding=encoding)


def read_report_text(path: str) -> DecodedText:
    """Read a file from disk and decode it with `decode_report_bytes()`."""
    return decode_report_bytes(Path(path).read_bytes())
