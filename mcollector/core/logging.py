"""
Logging for mcollector.

Records carry two kinds of structured fields:

- per-request context (``request_id``, ``method``, ``path``) published by
  ``RequestLoggingMiddleware`` in the ``request_context`` variable;
- per-call fields passed as ``data={...}`` to a ``ContextLogger``.

``StructuredFormatter`` writes both as one JSON object per line;
``ConsoleFormatter`` folds them into a single readable line.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

request_context: ContextVar[Dict[str, Any]] = ContextVar("request_context", default={})

# Context keys copied onto every record, in output order
CONTEXT_FIELDS = ("request_id", "method", "path")


def context_fields() -> Dict[str, Any]:
    """Request context fields that are set for the current task."""
    ctx = request_context.get()
    return {key: ctx[key] for key in CONTEXT_FIELDS if ctx.get(key) is not None}


def _record_time(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": _record_time(record).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(context_fields())

        data = getattr(record, "data", None)
        if data:
            entry["data"] = data
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """
    Single-line colour output for development.

    ``2026-01-02 10:00:00 | INFO     | 3f2a9c1e GET /value/gauge/x | name | message | data``
    """

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        timestamp = _record_time(record).strftime("%Y-%m-%d %H:%M:%S")

        fields = context_fields()
        request = " ".join(
            part
            for part in (
                fields.get("request_id", "-")[:8],
                fields.get("method"),
                fields.get("path"),
            )
            if part
        )

        line = (
            f"{timestamp} | {color}{record.levelname:8}{self.RESET} | "
            f"{request} | {record.name} | {record.getMessage()}"
        )

        data = getattr(record, "data", None)
        if data:
            line += " | " + " ".join(f"{key}={value}" for key, value in data.items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)

        return line


class ContextLogger(logging.LoggerAdapter):
    """Logger adapter that accepts a ``data`` mapping for structured fields."""

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = kwargs.get("extra", {})
        if "data" in kwargs:
            extra["data"] = kwargs.pop("data")
        kwargs["extra"] = extra
        return msg, kwargs


_loggers: Dict[str, ContextLogger] = {}


def get_logger(name: str) -> ContextLogger:
    """Get a cached ``ContextLogger`` for ``name``."""
    if name not in _loggers:
        _loggers[name] = ContextLogger(logging.getLogger(name), {})
    return _loggers[name]


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """
    Configure the root logger.

    Console output goes to stderr, as JSON when ``json_output`` is set and
    in colour otherwise. ``log_file`` adds a JSON file handler.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(StructuredFormatter() if json_output else ConsoleFormatter())
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(StructuredFormatter())
        root_logger.addHandler(file_handler)

    # Requests are logged by RequestLoggingMiddleware
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
