"""Configuration module - loads settings from .env file."""

import logging
import os

from dotenv import load_dotenv

# Must load .env before reading any variables; a missing file leaves defaults
load_dotenv()

logger = logging.getLogger(__name__)


def _parse_bool(value: str | None) -> bool:
    """Parse string to bool; default False for missing/invalid."""
    if not value:
        return False
    return value.strip().lower() in ("true", "1", "yes", "on")


def _parse_choice(key: str, default: str, choices: tuple[str, ...]) -> str:
    """Get env var restricted to a fixed set of values; raise on anything else."""
    value = os.getenv(key, default).strip().lower()
    if value not in choices:
        logger.warning("Invalid value for %s in .env: %s", key, value)
        raise ValueError(f"{key} must be one of {', '.join(choices)}, got {value!r}")
    return value


# Serial transport (python-escpos Serial printer). Empty port → interactive selection.
SERIAL_PORT: str = os.getenv("SERIAL_PORT", "").strip()
BAUDRATE: int = int(os.getenv("BAUDRATE", "9600").strip())
SERIAL_BYTESIZE: int = int(os.getenv("SERIAL_BYTESIZE", "8").strip())
SERIAL_PARITY: str = os.getenv("SERIAL_PARITY", "N").strip().upper()
SERIAL_STOPBITS: int = int(os.getenv("SERIAL_STOPBITS", "1").strip())
SERIAL_TIMEOUT: float = float(os.getenv("SERIAL_TIMEOUT", "1.0").strip())
SERIAL_DSRDTR: bool = _parse_bool(os.getenv("SERIAL_DSRDTR", "false"))
MOCK_PRINTER: bool = _parse_bool(os.getenv("MOCK_PRINTER", "false"))

CONNECT_RETRIES: int = int(os.getenv("CONNECT_RETRIES", "5").strip())
CONNECT_RETRY_DELAY: float = float(os.getenv("CONNECT_RETRY_DELAY", "2.0").strip())

# Python codec name and the matching ESC t <n> id (18 == CP852 on most printers)
CODEPAGE: str = os.getenv("CODEPAGE", "cp852").strip()
CODEPAGE_ID: int = int(os.getenv("CODEPAGE_ID", "18").strip())

# Printable width in dots (576 for 80 mm heads, 384 for 58 mm); QR codes wider than this are skipped
MAX_RASTER_WIDTH: int = int(os.getenv("MAX_RASTER_WIDTH", "576").strip())

# "gs" → GS ! 0x01 / 0x00, "esc" → ESC ! 0x10 / 0x00
DOUBLE_HEIGHT_COMMAND: str = _parse_choice("DOUBLE_HEIGHT_COMMAND", "gs", ("gs", "esc"))

# WebSocket job listener
WS_HOST: str = os.getenv("WS_HOST", "0.0.0.0").strip()
WS_PORT: int = int(os.getenv("WS_PORT", "8032").strip())
JOB_MODULE: str = os.getenv("JOB_MODULE", "printer").strip()

LOG_DIR: str = os.getenv("LOG_DIR", "logs").strip()
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").strip().upper()
