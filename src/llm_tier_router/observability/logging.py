"""Structured logging setup for the router."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

# Routing fields callers may attach with ``extra={...}``
EXTRA_FIELDS = (
    "request_id", "tier", "model", "score", "signals", "fallback",
    "streamed", "latency_ms", "status_code",
)


def _extras(record: logging.LogRecord) -> dict:
    return {k: getattr(record, k) for k in EXTRA_FIELDS if hasattr(record, k)}


class JSONFormatter(logging.Formatter):
    """One JSON object per line, routing extras as top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)
        log_entry.update(_extras(record))
        return json.dumps(log_entry, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable lines with routing extras appended as ``key=value``."""

    def __init__(self):
        super().__init__("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = _extras(record)
        if extras:
            line += " " + " ".join(f"{k}={v}" for k, v in extras.items())
        return line


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Configure root logging for the router process."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if fmt == "json" else TextFormatter())
    root.addHandler(handler)

    # Request lines from the upstream clients are noise at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
