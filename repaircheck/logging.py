"""
Structured Logging — JSON Output for Production

Configures Python logging to emit structured JSON logs.
Each log entry includes timestamp, level, logger, and any
report context fields passed via `extra`.

Usage:
    from repaircheck.logging import get_logger
    logger = get_logger("reviewer")
    logger.info("Review complete", extra={"report_id": rid, "engine": "safety"})
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone


LOG_LEVEL = os.getenv("REPAIRCHECK_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.getenv("REPAIRCHECK_LOG_FORMAT", "json")  # "json" or "text"

# Context fields copied from `extra` onto each JSON line
EXTRA_FIELDS = (
    "report_id", "engine", "safety_score", "protocol", "flags_count",
    "duration_ms", "status_code", "method", "path", "error", "error_type",
    "model", "tokens",
)


class JSONFormatter(logging.Formatter):
    """Formats log records as JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in EXTRA_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                entry[key] = val

        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable format for development."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s [%(levelname)-8s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def setup_logging(fmt: str | None = None, level: str | None = None) -> logging.Logger:
    """Configure the repaircheck logger tree. Call once at app startup."""
    root = logging.getLogger("repaircheck")
    level_name = (level or LOG_LEVEL).upper()
    root.setLevel(getattr(logging, level_name, logging.INFO))

    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    if (fmt or LOG_FORMAT) == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(TextFormatter())

    root.addHandler(handler)

    # Suppress noisy third-party loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("google_genai").setLevel(logging.WARNING)

    return root


def get_logger(name: str) -> logging.Logger:
    """Get a named logger under the repaircheck namespace."""
    return logging.getLogger(f"repaircheck.{name}")
