"""
Tests for structured logging configuration and JSON formatter.
"""
import json
import logging
import sys
from unittest.mock import patch

from insights.core.logging_config import (
    JSONFormatter,
    get_logger,
    request_id_context,
    setup_logging,
)


def _record(level=logging.INFO, msg="Test message", **extra):
    record = logging.LogRecord(
        name="insights.test",
        level=level,
        pathname="reconciliation.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Tests for the JSONFormatter class."""

    def test_basic_log_entry(self):
        log_entry = json.loads(JSONFormatter().format(_record()))

        assert "timestamp" in log_entry
        assert log_entry["level"] == "INFO"
        assert log_entry["logger"] == "insights.test"
        assert log_entry["message"] == "Test message"
        assert "request_id" not in log_entry

    def test_request_id_from_context(self):
        token = request_id_context.set("req-abc")
        try:
            log_entry = json.loads(JSONFormatter().format(_record()))
        finally:
            request_id_context.reset(token)

        assert log_entry["request_id"] == "req-abc"

    def test_structured_fields_are_copied(self):
        record = _record(session_id=12, user_id=3, status_code=200, duration_ms=1.5)

        log_entry = json.loads(JSONFormatter().format(record))

        assert log_entry["session_id"] == 12
        assert log_entry["user_id"] == 3
        assert log_entry["status_code"] == 200
        assert log_entry["duration_ms"] == 1.5

    def test_event_data_is_serialized(self):
        record = _record(event_data={"event": "session.completed", "properties": {"id": 1}})

        log_entry = json.loads(JSONFormatter().format(record))

        assert log_entry["event_data"]["event"] == "session.completed"

    def test_errors_include_source(self):
        log_entry = json.loads(JSONFormatter().format(_record(level=logging.ERROR)))

        assert log_entry["source"] == "reconciliation.py:42"

    def test_exception_is_formatted(self):
        try:
            raise ValueError("bad row")
        except ValueError:
            record = _record(level=logging.ERROR)
            record.exc_info = sys.exc_info()

        log_entry = json.loads(JSONFormatter().format(record))

        assert "ValueError: bad row" in log_entry["exception"]


class TestSetupLogging:
    def test_production_uses_json_formatter(self):
        with patch("insights.core.logging_config.settings") as mock_settings:
            mock_settings.LOG_LEVEL = "INFO"
            mock_settings.ENV = "production"
            mock_settings.DEBUG = False
            with patch("logging.config.dictConfig") as mock_dict_config:
                setup_logging()

        config = mock_dict_config.call_args[0][0]
        assert config["handlers"]["console"]["formatter"] == "json"
        assert config["loggers"]["insights"]["propagate"] is False

    def test_development_uses_plain_formatter(self):
        with patch("insights.core.logging_config.settings") as mock_settings:
            mock_settings.LOG_LEVEL = "DEBUG"
            mock_settings.ENV = "development"
            mock_settings.DEBUG = True
            with patch("logging.config.dictConfig") as mock_dict_config:
                setup_logging()

        config = mock_dict_config.call_args[0][0]
        assert config["handlers"]["console"]["formatter"] == "default"
        assert config["root"]["level"] == logging.DEBUG


class TestGetLogger:
    def test_returns_named_logger(self):
        assert get_logger("insights.core.results").name == "insights.core.results"
