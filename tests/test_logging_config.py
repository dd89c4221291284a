"""Tests for logging configuration."""

import json
import logging
import sys

from gce_prometheus_discovery.config import LoggingConfig
from gce_prometheus_discovery.logging_config import JSONFormatter, TextFormatter, configure_logging


def _record(msg="test", args=(), exc_info=None):
    return logging.LogRecord(
        name="test", level=logging.INFO, pathname="", lineno=0,
        msg=msg, args=args, exc_info=exc_info,
    )


class TestJSONFormatter:
    def test_formats_as_json(self):
        output = JSONFormatter().format(_record("hello %s", ("world",)))
        parsed = json.loads(output)
        assert parsed["message"] == "hello world"
        assert parsed["level"] == "INFO"
        assert "timestamp" in parsed

    def test_includes_extra_fields(self):
        record = _record()
        record.job = "zk"  # type: ignore
        record.project = "sandbox"  # type: ignore
        record.forced = False  # type: ignore
        parsed = json.loads(JSONFormatter().format(record))
        assert parsed["job"] == "zk"
        assert parsed["project"] == "sandbox"
        assert parsed["forced"] is False

    def test_ignores_unknown_extra_fields(self):
        record = _record()
        record.something_else = "x"  # type: ignore
        parsed = json.loads(JSONFormatter().format(record))
        assert "something_else" not in parsed

    def test_includes_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = _record(exc_info=sys.exc_info())
        parsed = json.loads(JSONFormatter().format(record))
        assert "ValueError: boom" in parsed["exception"]
        assert parsed["error_type"] == "ValueError"

    def test_timestamp_is_utc_with_millis(self):
        record = _record()
        record.created = 0.25
        parsed = json.loads(JSONFormatter().format(record))
        assert parsed["timestamp"] == "1970-01-01T00:00:00.250Z"


class TestTextFormatter:
    def test_appends_context_fields(self):
        record = _record("Listed 3 instances")
        record.project = "sandbox"  # type: ignore
        record.total_instances = 3  # type: ignore
        line = TextFormatter().format(record)
        assert line.endswith("[test] Listed 3 instances project=sandbox total_instances=3")

    def test_plain_message_without_context(self):
        assert TextFormatter().format(_record("hello")).endswith("[test] hello")


class TestConfigureLogging:
    def test_json_format(self):
        configure_logging(LoggingConfig(level="DEBUG", format="json"))
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert any(isinstance(h.formatter, JSONFormatter) for h in root.handlers)

    def test_text_format(self):
        configure_logging(LoggingConfig(level="WARNING", format="text"))
        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert any(isinstance(h.formatter, TextFormatter) for h in root.handlers)

    def test_replaces_existing_handlers(self):
        configure_logging(LoggingConfig())
        handler = configure_logging(LoggingConfig())
        assert logging.getLogger().handlers == [handler]

    def test_lowercase_level(self):
        configure_logging(LoggingConfig(level="debug", format="text"))
        assert logging.getLogger().level == logging.DEBUG

    def test_suppresses_noisy_loggers(self):
        configure_logging(LoggingConfig())
        assert logging.getLogger("google.api_core").level >= logging.WARNING
        assert logging.getLogger("urllib3").level >= logging.WARNING
