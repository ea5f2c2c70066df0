"""Serial printer discovery, selection and connection.

Bluetooth printers are reached through a bound RFCOMM serial port
(e.g. ``/dev/rfcomm0``), so discovery lists serial ports via pyserial.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, List

from serial.tools import list_ports

import config
from printer import create_serial_printer

logger = logging.getLogger(__name__)


def discover_ports() -> List[Any]:
    """Return available serial ports (pyserial ``ListPortInfo``), logging each."""
    logger.info("Searching for serial devices...")
    ports = sorted(list_ports.comports(), key=lambda p: p.device)
    for port in ports:
        logger.info("Found device: %s (%s)", port.description, port.device)
    logger.info("Finished scanning: %d device(s)", len(ports))
    return ports


def select_port(
    ports: List[Any],
    ask: Callable[[str], str] = input,
    show: Callable[[str], None] = print,
) -> str:
    """Prompt until a valid 1-based device number is entered; return its path."""
    if not ports:
        raise ConnectionError("No serial devices found")

    for number, port in enumerate(ports, start=1):
        show(f"{number}: {port.description} ({port.device})")

    while True:
        answer = ask("Select device number: ").strip()
        try:
            index = int(answer) - 1
        except ValueError:
            index = -1
        if 0 <= index < len(ports):
            return ports[index].device
        show("Invalid selection")


async def connect_printer(
    devfile: str,
    retries: int | None = None,
    delay: float | None = None,
    factory: Callable[[str], Any] = create_serial_printer,
) -> Any:
    """Open the printer at ``devfile``, retrying on failure.

    Raises:
        ConnectionError: every attempt failed.
    """
    retries = retries if retries is not None else config.CONNECT_RETRIES
    delay = delay if delay is not None else config.CONNECT_RETRY_DELAY

    for attempt in range(1, retries + 1):
        logger.info("Connection attempt %d/%d to %s...", attempt, retries, devfile)
        try:
            device = factory(devfile)
            device.open()
        except Exception as e:
            logger.error("Connection failed: %s", e)
            if attempt == retries:
                break
            logger.info("Retrying in %s seconds...", delay)
            await asyncio.sleep(delay)
            continue
        logger.info("Connected successfully")
        return device

    raise ConnectionError(f"Failed to connect after {retries} attempts")
