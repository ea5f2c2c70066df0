"""Split job content into printer-friendly segments.

Content is plain text with a few inline conventions:

- ``{{{{{qrcode}}}}}`` marks where the next QR code from the job goes.
- A line wrapped in ``{dh}...{/dh}`` prints in double height.
- A line wrapped in ``{b}...{/b}`` prints in bold.
- A textual ``\\u001b`` (backslash, ``u001b``/``u001B``) followed by one or two
  characters from ``[@a-zA-Z0-9]`` is a raw ESC command, e.g. ``\\u001ba1``
  (centre alignment). Such tokens are sent before the rest of their line.

Markers are case-sensitive and only recognised when they frame the whole line;
anything else stays as literal text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Union

from print_tasks import QR_PLACEHOLDER

DH_OPEN, DH_CLOSE = "{dh}", "{/dh}"
BOLD_OPEN, BOLD_CLOSE = "{b}", "{/b}"

_ESCAPE_TOKEN = re.compile(r"\\u001[bB]([@a-zA-Z0-9]{1,2})")
ESC_BYTE = b"\x1b"


@dataclass(frozen=True)
class PlainLine:
    text: str


@dataclass(frozen=True)
class DoubleHeightLine:
    text: str


@dataclass(frozen=True)
class BoldLine:
    text: str


@dataclass(frozen=True)
class LiteralEscape:
    raw: bytes


@dataclass(frozen=True)
class QrMarker:
    index: int


Segment = Union[PlainLine, DoubleHeightLine, BoldLine, LiteralEscape, QrMarker]


def _unwrap(line: str, opener: str, closer: str) -> str | None:
    """Return the text between ``opener`` and ``closer`` if they frame the line."""

    if len(line) >= len(opener) + len(closer) and line.startswith(opener) and line.endswith(closer):
        return line[len(opener) : len(line) - len(closer)]
    return None


def _split_lines(chunk: str) -> List[str]:
    lines = chunk.split("\n")
    # A trailing newline ends the last line rather than opening a new one.
    if len(lines) > 1 and lines[-1] == "":
        lines.pop()
    return lines


def lex_line(line: str) -> List[Segment]:
    """Classify a single line (no newlines) into one or more segments."""

    inner = _unwrap(line, DH_OPEN, DH_CLOSE)
    if inner is not None:
        return [DoubleHeightLine(inner)]

    inner = _unwrap(line, BOLD_OPEN, BOLD_CLOSE)
    if inner is not None:
        return [BoldLine(inner)]

    segments: List[Segment] = []
    text_parts: List[str] = []
    pos = 0
    for match in _ESCAPE_TOKEN.finditer(line):
        text_parts.append(line[pos : match.start()])
        segments.append(LiteralEscape(ESC_BYTE + match.group(1).encode("ascii")))
        pos = match.end()
    text_parts.append(line[pos:])

    segments.append(PlainLine("".join(text_parts)))
    return segments


def segment_content(content: str) -> List[Segment]:
    """Turn raw job content into an ordered list of segments.

    For ``N`` placeholders the result holds ``QrMarker(0)`` .. ``QrMarker(N-1)``,
    each placed right after the text that precedes it. Empty chunks (e.g. two
    adjacent placeholders) contribute no text segments.
    """

    chunks = content.split(QR_PLACEHOLDER)
    segments: List[Segment] = []
    for index, chunk in enumerate(chunks):
        if chunk:
            for line in _split_lines(chunk):
                segments.extend(lex_line(line))
        if index < len(chunks) - 1:
            segments.append(QrMarker(index))
    return segments
