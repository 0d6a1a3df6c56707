"""Structured JSON logging utilities.

Diagnostics go to stderr as one JSON object per line; stdout is reserved for
decoded messages.
"""

import json
import logging
import sys
import time
from typing import Any, TextIO

ROOT_LOGGER = "jaegercat"

# uvicorn.error propagates into "uvicorn"; the access log is disabled
THIRD_PARTY_LOGGERS = ("uvicorn",)

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "error": logging.ERROR,
}


class StructuredLogger:
    """Structured JSON logger with consistent formatting and bound context."""

    def __init__(self, name: str, **context: Any):
        self.logger = logging.getLogger(name)
        self.context = context

    def bind(self, **fields: Any) -> "StructuredLogger":
        """Return a logger for the same name carrying extra context fields."""
        return StructuredLogger(self.logger.name, **{**self.context, **fields})

    def _log(self, level: int, event: str, **fields: Any) -> None:
        """Internal logging method."""
        if not self.logger.isEnabledFor(level):
            return
        record = {
            "ts": round(time.time(), 3),
            "level": logging.getLevelName(level),
            "logger": self.logger.name,
            "event": event,
            **self.context,
            **fields,
        }
        try:
            message = json.dumps(record, separators=(",", ":"), default=str)
        except (TypeError, ValueError) as err:
            message = f"LOG_SERIALIZE_ERROR event={event} error={err}"
        self.logger.log(level, message, extra={"structured": True})

    def debug(self, event: str, **fields: Any) -> None:
        """Log debug event."""
        self._log(logging.DEBUG, event, **fields)

    def info(self, event: str, **fields: Any) -> None:
        """Log info event."""
        self._log(logging.INFO, event, **fields)

    def error(self, event: str, **fields: Any) -> None:
        """Log error event."""
        self._log(logging.ERROR, event, **fields)

    def critical(self, event: str, **fields: Any) -> None:
        """Log critical event."""
        self._log(logging.CRITICAL, event, **fields)


class JsonLineFormatter(logging.Formatter):
    """Emit structured records as-is and wrap plain ones in the same shape."""

    def format(self, record: logging.LogRecord) -> str:
        if getattr(record, "structured", False):
            return record.getMessage()
        entry = {
            "ts": round(record.created, 3),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
        }
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, separators=(",", ":"), default=str)


def configure_logging(level: str = "info", stream: TextIO | None = None) -> logging.Logger:
    """Install the stderr handler on the package and uvicorn loggers.

    Safe to call more than once: the previous handler is replaced.
    """
    if level not in LEVELS:
        raise ValueError(f"unknown log level: {level}")
    numeric = LEVELS[level]

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JsonLineFormatter())
    handler._jaegercat = True  # type: ignore[attr-defined]

    for name in (ROOT_LOGGER, *THIRD_PARTY_LOGGERS):
        logger = logging.getLogger(name)
        for existing in list(logger.handlers):
            if getattr(existing, "_jaegercat", False):
                logger.removeHandler(existing)
        logger.addHandler(handler)
        logger.setLevel(numeric)
    logging.getLogger("uvicorn.error").setLevel(numeric)
    return logging.getLogger(ROOT_LOGGER)


def get_logger(name: str, **context: Any) -> StructuredLogger:
    """Get a structured logger instance for a specific module."""
    return StructuredLogger(name, **context)
