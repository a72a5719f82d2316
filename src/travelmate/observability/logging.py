"""Structured JSON logging with correlation ID support.

One JSON object per line on stdout. Structured fields travel in
``extra={"extra_fields": {...}}`` and are merged at the top level.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

from .correlation import get_correlation_id

_ROOT_LOGGER = "travelmate"


class JsonFormatter(logging.Formatter):
    """JSON formatter that adds the correlation ID and structured extra fields."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = get_correlation_id()
        if correlation_id:
            log_obj["correlationId"] = correlation_id

        if record.exc_info:
            log_obj["error_type"] = record.exc_info[0].__name__
            log_obj["exception"] = self.formatException(record.exc_info)

        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            log_obj.update(extra_fields)

        return json.dumps(log_obj, default=str)


def _level() -> int:
    level = logging.getLevelName(os.environ.get("LOG_LEVEL", "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging() -> None:
    """Attach the JSON handler to the travelmate logger tree.

    Domain modules log through plain logging.getLogger(__name__) and reach
    this handler by propagation.
    """
    get_logger(_ROOT_LOGGER)


def get_logger(name: str) -> logging.Logger:
    """Get a logger that writes JSON to stdout (handler added once)."""
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)
        logger.setLevel(_level())
        logger.propagate = False

    return logger
