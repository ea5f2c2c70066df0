"""Text → printer codepage bytes.

The printer runs with CP852 selected (``ESC t 18``). Python's ``cp852`` codec
covers the page, but a handful of South Slavic letters land on glyphs the
target printers render differently, so those are pinned to fixed byte values
before the codec sees the rest of the text.
"""

from __future__ import annotations

import re
from typing import Iterable

import config
from print_tasks import ReplaceRule

# Fixed byte values for letters the printer's CP852 table places differently.
DIACRITIC_BYTES: dict[str, int] = {
    "č": 0x8D,
    "ć": 0x8F,
    "š": 0x9C,
    "đ": 0xD0,
    "ž": 0x9E,
    "Č": 0x8C,
    "Ć": 0x8E,
    "Š": 0x9B,
    "Đ": 0xD1,
    "Ž": 0x9D,
}

# Capturing split keeps the pinned letters as their own pieces (odd indices).
_DIACRITIC_SPLIT = re.compile("([" + "".join(DIACRITIC_BYTES) + "])")


def apply_replacements(text: str, rules: Iterable[ReplaceRule]) -> str:
    """Apply substitution rules in order; each rule sees the previous output."""

    for rule in rules:
        text = rule.apply(text)
    return text


def encode_text(
    text: str,
    rules: Iterable[ReplaceRule] = (),
    codepage: str | None = None,
) -> bytes:
    """Return ``text`` as single-byte codepage output.

    Unencodable characters become ``?`` (codec ``errors="replace"``).
    """

    text = apply_replacements(text, rules)
    codec = codepage or config.CODEPAGE

    out = bytearray()
    for i, piece in enumerate(_DIACRITIC_SPLIT.split(text)):
        if i % 2:
            out.append(DIACRITIC_BYTES[piece])
        elif piece:
            out += piece.encode(codec, errors="replace")
    return bytes(out)
