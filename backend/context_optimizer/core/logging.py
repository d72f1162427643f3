"""Structured logging for Context Optimizer."""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import orjson

LEVEL_ENV = "CTXO_LOG_LEVEL"
FORMAT_ENV = "CTXO_LOG_FORMAT"
TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Third-party loggers that are chatty at INFO.
QUIET_LOGGERS = ("watchdog", "urllib3", "httpx")

_RESERVED = frozenset(logging.LogRecord("", 0, "", 0, "", None, None).__dict__) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """One JSON object per record; ``extra=`` fields are merged into the payload."""

    def format(self, record: logging.LogRecord) -> str:  # pragma: no cover - thin wrapper
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return orjson.dumps(payload, default=str).decode("utf-8")


def configure_logging(level: str | int | None = None, fmt: str | None = None) -> None:
    """Install a single stderr handler on the root logger.

    ``level`` and ``fmt`` ("json" or "text") default to ``CTXO_LOG_LEVEL`` and
    ``CTXO_LOG_FORMAT``.
    """
    level = level or os.environ.get(LEVEL_ENV, "INFO")
    fmt = (fmt or os.environ.get(FORMAT_ENV, "json")).lower()
    logging.captureWarnings(True)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter() if fmt == "json" else logging.Formatter(TEXT_FORMAT))
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str = "context_optimizer") -> logging.Logger:
    if not logging.getLogger().handlers:
        configure_logging()
    return logging.getLogger(name)


__all__ = ["JsonFormatter", "configure_logging", "get_logger"]
