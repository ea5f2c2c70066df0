"""Shared fixtures: pin config to the documented defaults regardless of .env."""

import pytest

import config


@pytest.fixture(autouse=True)
def default_config(monkeypatch):
    monkeypatch.setattr(config, "CODEPAGE", "cp852")
    monkeypatch.setattr(config, "CODEPAGE_ID", 18)
    monkeypatch.setattr(config, "MAX_RASTER_WIDTH", 576)
    monkeypatch.setattr(config, "DOUBLE_HEIGHT_COMMAND", "gs")
    monkeypatch.setattr(config, "JOB_MODULE", "printer")
    monkeypatch.setattr(config, "MOCK_PRINTER", True)
    yield config
