"""Logging configuration.

- readable: human-readable colored lines for local development
- json: one JSON object per line for log aggregation
- level: taken from Settings.log_level
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from submission_request.config import Settings


class JSONFormatter(logging.Formatter):
    """JSON log formatter for production / log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        for key in ("document_id", "section_id", "transition", "lifecycle", "error_code"):
            val = getattr(record, key, None)
            if val is not None:
                log_entry[key] = val
        return json.dumps(log_entry, ensure_ascii=False)


class ReadableFormatter(logging.Formatter):
    """Human-readable colored formatter for development."""

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
        ts = datetime.now().strftime("%H:%M:%S")
        base = f"{color}{ts} {record.levelname:<8}{self.RESET} {record.name}: {record.getMessage()}"
        if record.exc_info and record.exc_info[0] is not None:
            base += "\n" + self.formatException(record.exc_info)
        return base


def configure_logging(settings: Optional[Settings] = None) -> logging.Logger:
    """Install a single stderr handler on the package logger.

    Calling it again replaces the previous handler instead of adding one.
    Returns the configured package logger.
    """
    settings = settings or Settings.from_env()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    formatter = JSONFormatter() if settings.log_format == "json" else ReadableFormatter()

    package_logger = logging.getLogger("submission_request")
    package_logger.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    handler.setLevel(level)
    package_logger.addHandler(handler)
    package_logger.setLevel(level)

    package_logger.debug("Logging configured: level=%s format=%s", settings.log_level, settings.log_format)
    return package_logger


__all__ = [
    "JSONFormatter",
    "ReadableFormatter",
    "configure_logging",
]
