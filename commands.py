"""Build the ESC/POS byte stream for a print job.

The stream is produced lazily as a sequence of chunks so the transport can
write (and wait for) each one before the next is computed. Chunk order is the
order of segments in the job content.
"""

from __future__ import annotations

import logging
from typing import Iterator, Tuple

from escpos.constants import CODEPAGE_CHANGE, CTL_LF, ESC, GS

import config
from formatter import BoldLine, DoubleHeightLine, LiteralEscape, PlainLine, QrMarker, segment_content
from print_tasks import PrintJob
from qr_raster import QrGenerationError, rasterize_qr
from transcoder import encode_text

logger = logging.getLogger(__name__)

INITIALIZE = ESC + b"@"
BOLD_ON = ESC + b"E\x01"
BOLD_OFF = ESC + b"E\x00"

# (enable, disable) per printer command family
DOUBLE_HEIGHT_COMMANDS: dict[str, Tuple[bytes, bytes]] = {
    "gs": (GS + b"!\x01", GS + b"!\x00"),
    "esc": (ESC + b"!\x10", ESC + b"!\x00"),
}


def select_codepage(codepage_id: int | None = None) -> bytes:
    """ESC t <n>."""
    if codepage_id is None:
        codepage_id = config.CODEPAGE_ID
    return CODEPAGE_CHANGE + bytes((codepage_id,))


def double_height_commands(mode: str | None = None) -> Tuple[bytes, bytes]:
    mode = mode or config.DOUBLE_HEIGHT_COMMAND
    try:
        return DOUBLE_HEIGHT_COMMANDS[mode]
    except KeyError:
        raise ValueError(f"Unknown double height command family: {mode!r}") from None


def iter_job_chunks(job: PrintJob, double_height: str | None = None) -> Iterator[bytes]:
    """Yield the job's wire bytes chunk by chunk, in emission order."""

    dh_on, dh_off = double_height_commands(double_height)
    rules = job.replacements

    yield select_codepage()

    for seg in segment_content(job.content):
        if isinstance(seg, LiteralEscape):
            yield seg.raw
        elif isinstance(seg, DoubleHeightLine):
            yield dh_on
            yield encode_text(seg.text, rules) + CTL_LF
            yield dh_off
        elif isinstance(seg, BoldLine):
            yield BOLD_ON
            yield encode_text(seg.text, rules) + CTL_LF
            yield BOLD_OFF
        elif isinstance(seg, PlainLine):
            yield encode_text(seg.text, rules) + CTL_LF
        elif isinstance(seg, QrMarker):
            if seg.index >= len(job.qr_codes):
                logger.debug("No QR spec for placeholder %d; skipping", seg.index)
                continue
            spec = job.qr_codes[seg.index]
            if spec is None:
                logger.debug("QR entry %d was rejected; skipping", seg.index)
                continue
            try:
                yield rasterize_qr(spec.content, spec.size)
            except QrGenerationError as e:
                logger.error("Skipping QR code %d: %s", seg.index, e)
        else:
            raise TypeError(f"Unknown segment type: {type(seg)}")


def encode_job(job: PrintJob, double_height: str | None = None) -> bytes:
    """Whole job as a single byte string."""
    return b"".join(iter_job_chunks(job, double_height))
