"""Render QR codes as ESC/POS raster bit images (``GS v 0``).

The symbol is generated with the ``qrcode`` package at error-correction level
M, scaled by an integer factor and packed MSB-first, one row of
``width_bytes`` bytes per printed pixel row.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Sequence

import qrcode
from escpos.constants import GS
from qrcode.exceptions import DataOverflowError

import config

logger = logging.getLogger(__name__)

# GS v 0 m  (m = 0: normal density)
RASTER_HEADER = GS + b"v0\x00"
# xL xH and yL yH are 16-bit little-endian
MAX_HEADER_FIELD = 0xFFFF

Matrix = Sequence[Sequence[bool]]


class QrGenerationError(Exception):
    """QR symbol could not be generated for the given content."""


@dataclass(frozen=True)
class RasterGeometry:
    matrix_size: int
    scale: int

    @property
    def scaled_size(self) -> int:
        return self.matrix_size * self.scale

    @property
    def width_bytes(self) -> int:
        return (self.scaled_size + 7) // 8

    def header(self) -> bytes:
        """Raster command with xL xH yL yH size bytes."""
        w, h = self.width_bytes, self.scaled_size
        if w > MAX_HEADER_FIELD or h > MAX_HEADER_FIELD:
            raise QrGenerationError(f"Raster {h}x{h} dots does not fit the GS v 0 size fields")
        return RASTER_HEADER + bytes((w & 0xFF, (w >> 8) & 0xFF, h & 0xFF, (h >> 8) & 0xFF))


def compute_scale(size: int, matrix_size: int) -> int:
    """Pixels per module for a target ``size``; never less than 1."""

    return max(1, size * 2 // matrix_size)


def build_matrix(content: str) -> List[List[bool]]:
    """QR module matrix (no quiet zone) at the smallest version that fits."""

    qr = qrcode.QRCode(error_correction=qrcode.constants.ERROR_CORRECT_M, border=0)
    try:
        qr.add_data(content)
        qr.make(fit=True)
    except (DataOverflowError, ValueError) as e:
        raise QrGenerationError(f"Cannot encode {len(content)} characters as QR: {e}") from e
    return qr.get_matrix()


def pack_matrix(matrix: Matrix, scale: int) -> bytes:
    """Pack a module matrix into raster rows, each module ``scale`` px square."""

    geometry = RasterGeometry(matrix_size=len(matrix), scale=scale)
    width_bytes = geometry.width_bytes

    data = bytearray()
    for modules in matrix:
        row = bytearray(width_bytes)
        for x, dark in enumerate(modules):
            if not dark:
                continue
            for px in range(x * scale, x * scale + scale):
                row[px // 8] |= 0x80 >> (px % 8)
        data += bytes(row) * scale
    return bytes(data)


def rasterize_matrix(matrix: Matrix, size: int, max_width: int | None = None) -> bytes:
    """Header plus packed data for an already generated matrix.

    Raises:
        QrGenerationError: the scaled symbol is wider than ``max_width`` dots
            (default ``config.MAX_RASTER_WIDTH``).
    """

    if max_width is None:
        max_width = config.MAX_RASTER_WIDTH
    geometry = RasterGeometry(matrix_size=len(matrix), scale=compute_scale(size, len(matrix)))
    if geometry.scaled_size > max_width:
        raise QrGenerationError(
            f"QR size {size} gives {geometry.scaled_size} dots, printer width is {max_width}"
        )
    return geometry.header() + pack_matrix(matrix, geometry.scale)


def rasterize_qr(content: str, size: int) -> bytes:
    """Complete ``GS v 0`` block for ``content`` at roughly ``size`` (x2) dots.

    Raises:
        QrGenerationError: content does not fit any QR version at level M, or
            the scaled symbol is wider than the printer.
    """

    matrix = build_matrix(content)
    logger.debug("QR matrix %dx%d for %d chars (size=%d)", len(matrix), len(matrix), len(content), size)
    return rasterize_matrix(matrix, size)
