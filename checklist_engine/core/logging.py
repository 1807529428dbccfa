"""Structured JSON logging for the template engine.

Writes one JSON object per line to stderr. Configured once at app start.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any

_ROOT_LOGGER = "checklist_engine"
_setup_lock = threading.Lock()


class _JsonFormatter(logging.Formatter):
    """Format log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if hasattr(record, "node_id"):
            entry["node_id"] = record.node_id
        if hasattr(record, "issues"):
            entry["issues"] = record.issues
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = str(record.exc_info[1])
        return json.dumps(entry, default=str, ensure_ascii=False)


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Attach a JSON stream handler to the package logger (idempotent)."""
    logger = logging.getLogger(_ROOT_LOGGER)

    with _setup_lock:
        logger.setLevel(level.upper())
        for h in logger.handlers:
            if isinstance(h.formatter, _JsonFormatter):
                return logger

        handler = logging.StreamHandler()
        handler.setFormatter(_JsonFormatter())
        logger.addHandler(handler)
    return logger
