"""Tests for the single-line JSON log formatter."""

from __future__ import annotations

import json
import logging
import sys

from backoffice_api.middleware.json_formatter import JSONFormatter


def _record(level: int = logging.INFO, msg: str = "hello %s", args: tuple = ("world",), **extra) -> logging.LogRecord:
    record = logging.LogRecord("backoffice.test", level, __file__, 42, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_base_fields(self) -> None:
        payload = json.loads(JSONFormatter().format(_record()))

        assert payload["level"] == "INFO"
        assert payload["logger"] == "backoffice.test"
        assert payload["message"] == "hello world"
        assert payload["timestamp"].endswith("+00:00")
        assert "location" not in payload

    def test_optional_fields_only_when_set(self) -> None:
        formatter = JSONFormatter()

        with_trace = json.loads(formatter.format(_record(trace_id="t" * 32, span_id="")))
        assert with_trace["trace_id"] == "t" * 32
        assert "span_id" not in with_trace

        with_request = json.loads(formatter.format(_record(request={"method": "GET", "status_code": 200})))
        assert with_request["request"] == {"method": "GET", "status_code": 200}

    def test_errors_carry_location_and_traceback(self) -> None:
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = _record(level=logging.ERROR, msg="failed", args=())
            record.exc_info = sys.exc_info()

        payload = json.loads(JSONFormatter().format(record))
        assert payload["level"] == "ERROR"
        assert payload["location"].endswith(":42")
        assert "RuntimeError: boom" in payload["exc_info"]

    def test_output_is_single_line(self) -> None:
        output = JSONFormatter().format(_record(msg="multi\nline", args=()))
        assert "\n" not in output
        assert json.loads(output)["message"] == "multi\nline"

    def test_non_ascii_preserved(self) -> None:
        output = JSONFormatter().format(_record(msg="Müller", args=()))
        assert "Müller" in output
