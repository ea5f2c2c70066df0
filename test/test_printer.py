"""Pytest tests for printer module with MOCK_PRINTER=True."""

import asyncio
import logging
import time
from unittest.mock import patch

import pytest

from commands import encode_job
from print_tasks import PrintJob, QrSpec
from printer import AsyncPrinter, MockPrinter


@pytest.fixture(autouse=True)
def mock_config():
    """Force MOCK_PRINTER=True for all tests."""
    with patch("printer.config") as mock_cfg:
        mock_cfg.MOCK_PRINTER = True
        mock_cfg.SERIAL_PORT = "/dev/rfcomm0"
        mock_cfg.BAUDRATE = 9600
        mock_cfg.CODEPAGE_ID = 18
        yield mock_cfg


class SlowDevice(MockPrinter):
    """Records writes; each write blocks briefly so jobs could overlap."""

    def _raw(self, data: bytes) -> None:
        time.sleep(0.001)
        super()._raw(data)


class FlakyDevice(MockPrinter):
    """Fails any write containing b'boom'."""

    def _raw(self, data: bytes) -> None:
        if b"boom" in data:
            raise OSError("write failed")
        super()._raw(data)


class TestAsyncPrinterInit:
    """Tests for AsyncPrinter.__init__."""

    def test_init_uses_mock_printer_when_mock_true(self, mock_config):
        """Printer should be MockPrinter instance when MOCK_PRINTER=True."""
        p = AsyncPrinter()
        assert isinstance(p.printer, MockPrinter)
        assert p._mock is True

    def test_init_uses_given_device(self, mock_config):
        device = SlowDevice()
        p = AsyncPrinter(device)
        assert p.printer is device

    def test_init_creates_queue(self, mock_config):
        """Should create an empty asyncio.Queue."""
        p = AsyncPrinter()
        assert p.queue.empty()

    def test_init_opens_serial_when_not_mock(self, mock_config):
        mock_config.MOCK_PRINTER = False
        with patch("printer.create_serial_printer") as create:
            p = AsyncPrinter()
        create.assert_called_once_with("/dev/rfcomm0")
        assert p.printer is create.return_value
        assert p._mock is False


@pytest.mark.asyncio
class TestAsyncPrinterPrintJob:
    """Tests for AsyncPrinter.print_job."""

    async def test_print_job_writes_encoded_stream(self, mock_config):
        p = AsyncPrinter()
        job = PrintJob(content="Hello\n{{{{{qrcode}}}}}", qr_codes=(QrSpec("X", 50),))
        written = await p.print_job(job)
        assert p.printer.output == encode_job(job)
        assert written == len(p.printer.output)

    async def test_print_job_logs_when_mock(self, mock_config, caplog):
        caplog.set_level(logging.INFO)
        p = AsyncPrinter()
        await p.print_job(PrintJob(content="Hello, world!"))
        assert "Printed (mock" in caplog.text
        assert "Hello, world!" in caplog.text

    async def test_jobs_do_not_interleave(self, mock_config):
        p = AsyncPrinter(SlowDevice())
        a = PrintJob(content="\n".join(f"A{i}" for i in range(20)))
        b = PrintJob(content="\n".join(f"B{i}" for i in range(20)))
        await asyncio.gather(p.print_job(a), p.print_job(b))
        assert p.printer.output in (encode_job(a) + encode_job(b), encode_job(b) + encode_job(a))

    async def test_write_failure_abandons_job(self, mock_config, caplog):
        caplog.set_level(logging.ERROR)
        p = AsyncPrinter(FlakyDevice())
        with pytest.raises(OSError):
            await p.print_job(PrintJob(content="first\nboom\nlast"))
        assert p.printer.output == b"\x1bt\x12first\n"
        assert "abandoned" in caplog.text

    async def test_lock_released_after_failure(self, mock_config):
        p = AsyncPrinter(FlakyDevice())
        with pytest.raises(OSError):
            await p.print_job(PrintJob(content="boom"))
        p.printer.clear()
        await asyncio.wait_for(p.print_job(PrintJob(content="ok")), timeout=1)
        assert p.printer.output == b"\x1bt\x12ok\n"

    async def test_initialize_resets_and_selects_codepage(self, mock_config):
        p = AsyncPrinter()
        await p.initialize()
        assert p.printer.output == b"\x1b@\x1bt\x12"


@pytest.mark.asyncio
class TestProcessQueue:
    """Tests for AsyncPrinter.process_queue."""

    async def test_worker_continues_after_failed_job(self, mock_config, caplog):
        caplog.set_level(logging.ERROR)
        p = AsyncPrinter(FlakyDevice())
        await p.queue.put(PrintJob(content="boom"))
        await p.queue.put(PrintJob(content="next"))

        p.start_worker()
        try:
            await asyncio.wait_for(p.queue.join(), timeout=2)
        finally:
            await p.shutdown()

        # the failed job got as far as its codepage select
        assert p.printer.output == b"\x1bt\x12" + b"\x1bt\x12next\n"
        assert "Queue processing failed" in caplog.text


class ClosingDevice(SlowDevice):
    def __init__(self) -> None:
        super().__init__()
        self.closed_with = None

    def close(self) -> None:
        self.closed_with = self.output


@pytest.mark.asyncio
class TestShutdown:
    """Tests for AsyncPrinter.start_worker / shutdown."""

    async def test_shutdown_lets_current_job_finish(self, mock_config):
        device = ClosingDevice()
        p = AsyncPrinter(device)
        job = PrintJob(content="\n".join(f"line {i}" for i in range(20)))
        worker = p.start_worker()
        await p.queue.put(job)
        for _ in range(200):
            if device.output:
                break
            await asyncio.sleep(0.001)

        await p.shutdown()

        assert worker.done()
        assert device.output == encode_job(job)
        assert device.closed_with == encode_job(job)

    async def test_shutdown_without_worker_closes_device(self, mock_config):
        device = ClosingDevice()
        p = AsyncPrinter(device)
        await p.shutdown()
        assert device.closed_with == b""

    async def test_start_worker_is_idempotent(self, mock_config):
        p = AsyncPrinter()
        try:
            assert p.start_worker() is p.start_worker()
        finally:
            await p.shutdown()
