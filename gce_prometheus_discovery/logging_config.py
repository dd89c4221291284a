"""Log formatting for the daemon: one JSON object per line, or plain text with key=value context."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

from .config import LoggingConfig

# Context attached with ``extra=`` by the discovery, write and loop code
CONTEXT_FIELDS = (
    "job", "project", "instance", "path", "forced", "state",
    "elapsed_seconds", "total_instances", "total_targets", "filtered",
)

_QUIET_LOGGERS = ("google", "google.auth", "google.api_core", "urllib3")


def _context(record: logging.LogRecord) -> dict:
    return {
        key: getattr(record, key)
        for key in CONTEXT_FIELDS
        if getattr(record, key, None) is not None
    }


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: dict = {
            "timestamp": created.strftime("%Y-%m-%dT%H:%M:%S.") + f"{created.microsecond // 1000:03d}Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_context(record))

        if record.exc_info and record.exc_info[1]:
            payload["error_type"] = type(record.exc_info[1]).__name__
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


class TextFormatter(logging.Formatter):
    """``2024-05-01 12:00:00 INFO     [logger] message job=zk project=sandbox``"""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        context = _context(record)
        if context:
            line += " " + " ".join(f"{key}={value}" for key, value in context.items())
        return line


_FORMATTERS = {"json": JSONFormatter, "text": TextFormatter}


def configure_logging(config: LoggingConfig) -> logging.Handler:
    """Route all logging to a single stderr handler. Returns the installed handler."""
    root = logging.getLogger()
    root.setLevel(config.level.upper())

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_FORMATTERS[config.format]())
    root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return handler
