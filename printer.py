"""Async printer session for a serial ESC/POS thermal printer.

One session owns the transport handle. Jobs are written strictly one at a
time: the job lock is held for the whole byte stream of a job and every chunk
write is awaited before the next chunk is built.
"""

import asyncio
import contextlib
import logging
from typing import Any

import config
from commands import INITIALIZE, iter_job_chunks, select_codepage
from print_tasks import PrintJob

logger = logging.getLogger(__name__)


class MockPrinter:
    """Stub printer for running without hardware; keeps every byte written."""

    def __init__(self) -> None:
        self._output = bytearray()

    def _raw(self, data: bytes) -> None:
        self._output += data

    @property
    def output(self) -> bytes:
        return bytes(self._output)

    def clear(self) -> None:
        self._output.clear()

    def close(self) -> None:
        """No-op stub."""


def create_serial_printer(devfile: str) -> Any:
    """Create a python-escpos Serial printer using the configured line settings."""
    # Import lazily so dev/tests can run without a serial device
    from escpos.printer import Serial  # type: ignore

    return Serial(
        devfile=devfile,
        baudrate=config.BAUDRATE,
        bytesize=config.SERIAL_BYTESIZE,
        parity=config.SERIAL_PARITY,
        stopbits=config.SERIAL_STOPBITS,
        timeout=config.SERIAL_TIMEOUT,
        dsrdtr=config.SERIAL_DSRDTR,
    )


class AsyncPrinter:
    """Async session around a printer device exposing ``_raw(bytes)``."""

    def __init__(self, device: Any | None = None) -> None:
        self.printer: Any
        if device is not None:
            self.printer = device
        elif config.MOCK_PRINTER:
            self.printer = MockPrinter()
        else:
            self.printer = create_serial_printer(config.SERIAL_PORT)

        self._mock = isinstance(self.printer, MockPrinter)
        # Queue holds jobs accepted by the listener, printed in arrival order
        self.queue: asyncio.Queue[PrintJob] = asyncio.Queue()
        self._lock = asyncio.Lock()
        self._worker: asyncio.Task[None] | None = None

    async def write(self, data: bytes) -> None:
        """Write one chunk and wait until the device call returns."""
        await asyncio.get_running_loop().run_in_executor(None, self.printer._raw, data)

    async def initialize(self) -> None:
        """Reset the printer (ESC @) and select the configured codepage."""
        async with self._lock:
            await self.write(INITIALIZE)
            await self.write(select_codepage())
        logger.info("Printer initialized (codepage id %d)", config.CODEPAGE_ID)

    async def print_job(self, job: PrintJob) -> int:
        """Encode and write a job; returns the number of bytes written.

        A failed write abandons the job and re-raises; nothing is retried.
        """
        if len(job.qr_codes) > job.placeholder_count:
            logger.debug(
                "Job has %d QR specs but %d placeholders; extra specs unused",
                len(job.qr_codes),
                job.placeholder_count,
            )

        written = 0
        async with self._lock:
            try:
                for chunk in iter_job_chunks(job):
                    await self.write(chunk)
                    written += len(chunk)
            except Exception as e:
                logger.error("Print job abandoned after %d bytes: %s", written, e)
                raise

        preview = job.content[:50]
        if self._mock:
            logger.info("Printed (mock, %d bytes): %s", written, preview)
        else:
            logger.info("Printed (%d bytes): %s", written, preview)
        return written

    async def process_queue(self) -> None:
        """Process print queue continuously."""
        while True:
            job: PrintJob = await self.queue.get()
            try:
                await self.print_job(job)
            except Exception as e:
                logger.error("Queue processing failed for job %r: %s", job.content[:50], e, exc_info=True)
            finally:
                self.queue.task_done()

    def start_worker(self) -> "asyncio.Task[None]":
        """Run :meth:`process_queue` in a background task owned by the session."""
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self.process_queue())
        return self._worker

    async def shutdown(self) -> None:
        """Stop the queue worker and release the device.

        A job already being written is allowed to finish; queued jobs that
        have not started are dropped.
        """
        async with self._lock:
            if self._worker is not None:
                self._worker.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self._worker
                self._worker = None
            self.close()

    def close(self) -> None:
        try:
            self.printer.close()
        except Exception as e:
            logger.warning("Printer close failed: %s", e)
