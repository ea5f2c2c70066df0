"""WebSocket print server for a serial ESC/POS thermal printer.

Clients send JSON frames::

    {"module": "printer",
     "payload": {"content": "...", "qrcodes": [{"content": "...", "size": 50}],
                 "replaceChars": ["from:to"]}}

Accepted jobs are queued and printed one at a time. Submission is
fire-and-forget: nothing is sent back to the client.
"""

import asyncio
import json
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from aiohttp import WSMsgType, web

import config
from devices import connect_printer, discover_ports, select_port
from print_tasks import JobFormatError, PrintJob
from printer import AsyncPrinter

logger = logging.getLogger(__name__)

PRINTER_KEY = web.AppKey("printer", AsyncPrinter)


def setup_logging() -> None:
    """Rotating file log plus console output."""
    log_dir = Path(config.LOG_DIR)
    log_dir.mkdir(exist_ok=True)
    file_handler = RotatingFileHandler(
        log_dir / "app.log",
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
    )
    logging.basicConfig(
        handlers=[file_handler, logging.StreamHandler()],
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def decode_job(message: str) -> PrintJob | None:
    """Decode a text frame into a job; None if it is addressed to another module.

    Raises:
        JobFormatError: frame is not valid JSON or the payload is malformed.
    """
    try:
        data: Any = json.loads(message)
    except json.JSONDecodeError as e:
        raise JobFormatError(f"Invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise JobFormatError("Job message must be a JSON object")
    if data.get("module") != config.JOB_MODULE:
        return None
    return PrintJob.from_payload(data.get("payload"))


async def handle_message(printer: AsyncPrinter, message: str) -> None:
    """Decode one frame and queue the job; malformed frames are logged and dropped."""
    try:
        job = decode_job(message)
    except JobFormatError as e:
        logger.error("Error processing message: %s", e)
        return
    if job is None:
        logger.debug("Ignoring message for another module")
        return
    logger.info(
        "Job received: %d chars, %d QR code(s), %d replacement rule(s)",
        len(job.content),
        len(job.qr_codes),
        len(job.replacements),
    )
    await printer.queue.put(job)


async def websocket_handler(request: web.Request) -> web.WebSocketResponse:
    ws = web.WebSocketResponse()
    await ws.prepare(request)
    printer = request.app[PRINTER_KEY]
    logger.info("Client connected: %s", request.remote)

    async for msg in ws:
        if msg.type == WSMsgType.TEXT:
            await handle_message(printer, msg.data)
        elif msg.type == WSMsgType.BINARY:
            await handle_message(printer, msg.data.decode("utf-8", errors="replace"))
        elif msg.type == WSMsgType.ERROR:
            logger.error("WebSocket connection closed with exception %s", ws.exception())

    logger.info("Client disconnected: %s", request.remote)
    return ws


def create_app(printer: AsyncPrinter) -> web.Application:
    app = web.Application()
    app[PRINTER_KEY] = printer
    app.router.add_get("/", websocket_handler)
    return app


async def serve(devfile: str | None) -> None:
    """Connect, start the queue worker and run the listener until cancelled."""
    device = await connect_printer(devfile) if devfile else None
    printer = AsyncPrinter(device)
    await printer.initialize()

    printer.start_worker()
    runner = web.AppRunner(create_app(printer))
    await runner.setup()
    site = web.TCPSite(runner, config.WS_HOST, config.WS_PORT)
    await site.start()
    logger.info("WebSocket server running on port %d", config.WS_PORT)
    try:
        await asyncio.Event().wait()
    finally:
        await runner.cleanup()
        await printer.shutdown()


def main() -> None:
    """Pick the printer, then serve print jobs."""
    setup_logging()
    devfile: str | None = None
    try:
        if not config.MOCK_PRINTER:
            devfile = config.SERIAL_PORT or select_port(discover_ports())
        asyncio.run(serve(devfile))
    except KeyboardInterrupt:
        pass
    except Exception as e:
        logger.exception("Main error: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
