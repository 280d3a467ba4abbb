"""Tests for structured log formatting and LogContext."""
import json
import logging

from observability.logging import ConsoleFormatter, JSONFormatter, LogContext, get_trace_id, set_trace_id


def make_record(message: str = "Polling folder", level: int = logging.INFO, **extra) -> logging.LogRecord:
    record = logging.LogRecord("courier.auto_fetch", level, __file__, 10, message, None, None)
    record.__dict__.update(extra)
    return record


def test_json_includes_bound_context():
    with LogContext(trace_id="autofetch:F1", folder_id="F1"):
        entry = json.loads(JSONFormatter("courier").format(make_record(chat_id="123@c.us")))

    assert entry["service"] == "courier"
    assert entry["message"] == "Polling folder"
    assert entry["trace_id"] == "autofetch:F1"
    assert entry["folder_id"] == "F1"
    assert entry["chat_id"] == "123@c.us"
    assert "location" not in entry


def test_context_is_restored_after_block():
    with LogContext(trace_id="outer"):
        with LogContext(trace_id="inner", folder_id="F2"):
            assert get_trace_id() == "inner"
        assert get_trace_id() == "outer"

    assert get_trace_id() is None


def test_errors_carry_location():
    entry = json.loads(JSONFormatter("courier").format(make_record(level=logging.ERROR)))

    assert entry["level"] == "ERROR"
    assert "test_logging.py:10" in entry["location"]


def test_unserializable_extra_falls_back_to_str():
    entry = json.loads(JSONFormatter("courier").format(make_record(path=object())))

    assert entry["path"].startswith("<object object")


def test_console_format():
    formatter = ConsoleFormatter("courier", use_colors=False)

    with LogContext(trace_id="autofetch:F1", folder_id="F1"):
        line = formatter.format(make_record())

    assert line == "[INFO] courier/auto_fetch [autofetch:F1]: Polling folder {folder_id=F1}"


def test_set_trace_id_keeps_other_fields():
    with LogContext(folder_id="F1"):
        set_trace_id("t-1")
        entry = json.loads(JSONFormatter("courier").format(make_record()))

    assert entry["trace_id"] == "t-1"
    assert entry["folder_id"] == "F1"
