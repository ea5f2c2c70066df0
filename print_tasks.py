"""Print job model: text content, QR specs and character replacement rules.

Jobs arrive as decoded JSON payloads from the WebSocket listener and are
converted here into immutable objects owned by the encoding pipeline.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

logger = logging.getLogger(__name__)

QR_PLACEHOLDER = "{{{{{qrcode}}}}}"


class JobFormatError(ValueError):
    """Raised when a decoded payload cannot be turned into a PrintJob."""


@dataclass(frozen=True)
class QrSpec:
    content: str
    size: int

    @classmethod
    def from_payload(cls, item: Any) -> "QrSpec":
        if not isinstance(item, Mapping):
            raise JobFormatError(f"QR entry must be an object, got {type(item).__name__}")
        content = item.get("content")
        if not isinstance(content, str):
            raise JobFormatError("QR entry is missing 'content'")
        size = item.get("size")
        # bool is an int subclass; reject it explicitly
        if isinstance(size, bool) or not isinstance(size, int) or size <= 0:
            raise JobFormatError(f"QR size must be a positive integer, got {size!r}")
        return cls(content=content, size=size)


@dataclass(frozen=True)
class ReplaceRule:
    """Global find-replace rule; the replacement is inserted literally."""

    pattern: re.Pattern[str]
    replacement: str

    @classmethod
    def parse(cls, spec: str) -> "ReplaceRule | None":
        """Parse ``"pattern:replacement"`` (split on the first colon).

        Returns None for entries without a colon. Patterns that are not valid
        regular expressions are matched literally.
        """
        source, sep, replacement = spec.partition(":")
        if not sep:
            logger.warning("Ignoring replacement rule without ':' separator: %r", spec)
            return None
        try:
            pattern = re.compile(source)
        except re.error as e:
            logger.warning("Replacement pattern %r is not a valid regex (%s); matching literally", source, e)
            pattern = re.compile(re.escape(source))
        return cls(pattern=pattern, replacement=replacement)

    def apply(self, text: str) -> str:
        return self.pattern.sub(lambda _m: self.replacement, text)


@dataclass(frozen=True)
class PrintJob:
    content: str
    # None marks an entry that failed validation; it prints nothing
    qr_codes: tuple[QrSpec | None, ...] = ()
    replacements: tuple[ReplaceRule, ...] = ()

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "PrintJob":
        """Build a job from the listener's ``payload`` object.

        Expected keys: ``content`` (required), ``qrcodes`` and ``replaceChars``
        (optional lists).
        """
        if not isinstance(payload, Mapping):
            raise JobFormatError("Job payload must be an object")
        content = payload.get("content")
        if not isinstance(content, str):
            raise JobFormatError("Job payload is missing 'content'")

        qr_codes: list[QrSpec | None] = []
        for index, item in enumerate(_as_list(payload, "qrcodes")):
            try:
                qr_codes.append(QrSpec.from_payload(item))
            except JobFormatError as e:
                # keep the slot so later specs still line up with their placeholders
                logger.warning("Dropping QR entry %d: %s", index, e)
                qr_codes.append(None)

        rules: list[ReplaceRule] = []
        for spec in _as_list(payload, "replaceChars"):
            if not isinstance(spec, str):
                raise JobFormatError(f"Replacement rule must be a string, got {spec!r}")
            rule = ReplaceRule.parse(spec)
            if rule is not None:
                rules.append(rule)

        return cls(content=content, qr_codes=tuple(qr_codes), replacements=tuple(rules))

    @property
    def placeholder_count(self) -> int:
        return self.content.count(QR_PLACEHOLDER)


def _as_list(payload: Mapping[str, Any], key: str) -> Sequence[Any]:
    value = payload.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise JobFormatError(f"'{key}' must be a list")
    return value
