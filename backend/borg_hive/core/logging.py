"""Logging utilities shared by the drone and the vinculum."""

from __future__ import annotations

import logging
import sys
from typing import Any

import orjson

_VERBOSITY_LEVELS = ("INFO", "DEBUG")


class JsonFormatter(logging.Formatter):
    """Lightweight JSON log formatter."""

    default_fields = ("timestamp", "level", "name", "message")

    def format(self, record: logging.LogRecord) -> str:  # pragma: no cover - thin wrapper
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = record.stack_info
        for key, value in record.__dict__.items():
            if key.startswith("ctx_"):
                payload[key] = value
        return orjson.dumps(payload, default=str).decode("utf-8")


def configure_logging(level: str | int = "INFO", use_json: bool = True) -> None:
    """Configure root logger with optional JSON formatting."""
    logging.captureWarnings(True)
    root = logging.getLogger()
    root.setLevel(level.upper() if isinstance(level, str) else level)
    handler = logging.StreamHandler(sys.stderr)
    if use_json:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root.handlers = [handler]


def level_for_verbosity(verbosity: int, configured: str = "INFO") -> str:
    """Translate a `-v` count into a log level; zero keeps the configured level."""
    if verbosity <= 0:
        return configured
    return _VERBOSITY_LEVELS[min(verbosity, len(_VERBOSITY_LEVELS) - 1)]


def get_logger(name: str = "borg_hive") -> logging.Logger:
    """Return a named logger; the root is configured at process startup."""
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "level_for_verbosity"]
