"""Tests for decoding listener payloads into PrintJob objects."""

import logging

import pytest

from print_tasks import JobFormatError, PrintJob, QrSpec, ReplaceRule


def test_from_payload_full():
    job = PrintJob.from_payload(
        {
            "content": "Hello {{{{{qrcode}}}}}",
            "qrcodes": [{"content": "https://example.com", "size": 50}],
            "replaceChars": ["ß:ss", "€:EUR"],
        }
    )
    assert job.content == "Hello {{{{{qrcode}}}}}"
    assert job.qr_codes == (QrSpec("https://example.com", 50),)
    assert [r.replacement for r in job.replacements] == ["ss", "EUR"]
    assert job.placeholder_count == 1


def test_from_payload_optional_lists():
    job = PrintJob.from_payload({"content": "x", "qrcodes": None})
    assert job.qr_codes == ()
    assert job.replacements == ()


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"content": 12},
        None,
        {"content": "x", "qrcodes": {"content": "a", "size": 1}},
        {"content": "x", "replaceChars": [1]},
    ],
)
def test_from_payload_rejects_malformed(payload):
    with pytest.raises(JobFormatError):
        PrintJob.from_payload(payload)


@pytest.mark.parametrize(
    "entry",
    [
        {"size": 10},
        {"content": "a", "size": 0},
        {"content": "a", "size": 50.0},
        {"content": "a", "size": "50"},
        {"content": "a", "size": True},
        "a",
    ],
)
def test_bad_qr_entry_keeps_job_and_slot(entry, caplog):
    caplog.set_level(logging.WARNING)
    job = PrintJob.from_payload(
        {"content": "x", "qrcodes": [entry, {"content": "b", "size": 20}]}
    )
    assert job.content == "x"
    assert job.qr_codes == (None, QrSpec("b", 20))
    assert "Dropping QR entry 0" in caplog.text


def test_job_format_error_is_value_error():
    assert issubclass(JobFormatError, ValueError)


def test_rule_splits_on_first_colon():
    rule = ReplaceRule.parse("a:b:c")
    assert rule.pattern.pattern == "a"
    assert rule.replacement == "b:c"


def test_rule_without_colon_is_ignored(caplog):
    caplog.set_level(logging.WARNING)
    assert ReplaceRule.parse("abc") is None
    job = PrintJob.from_payload({"content": "x", "replaceChars": ["abc", "x:y"]})
    assert len(job.replacements) == 1
    assert "without ':'" in caplog.text


def test_invalid_regex_is_matched_literally(caplog):
    caplog.set_level(logging.WARNING)
    rule = ReplaceRule.parse("(:[")
    assert rule.apply("f(x)") == "f[x)"
    assert "not a valid regex" in caplog.text


def test_empty_replacement_deletes():
    assert ReplaceRule.parse("-:").apply("a-b-c") == "abc"
