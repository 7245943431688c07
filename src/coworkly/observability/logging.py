"""Structured JSON logging with correlation ID support."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from .correlation import get_correlation_id

ROOT_LOGGER_NAME = "coworkly"


class JsonFormatter(logging.Formatter):
    """JSON formatter that includes correlation ID."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = get_correlation_id()
        if correlation_id:
            log_obj["correlationId"] = correlation_id

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        # Include extra fields if present
        if hasattr(record, "extra_fields"):
            log_obj.update(record.extra_fields)

        return json.dumps(log_obj, default=str)


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach the JSON handler to the package root logger.

    Child loggers from get_logger() propagate here. Safe to call repeatedly.
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)

    # Only configure if no handlers (avoid duplicate handlers)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonFormatter())
        root.addHandler(handler)
        root.propagate = False

    root.setLevel(level.upper())
    return root


def get_logger(name: str) -> logging.Logger:
    """Get a module logger under the package root."""
    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)
