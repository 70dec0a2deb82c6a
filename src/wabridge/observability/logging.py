"""JSON line logging with correlation ID support.

Every record is one JSON object on stdout. ``configure_server_logging`` puts
uvicorn's own loggers on the same format so the process emits a single stream.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

from .correlation import get_correlation_id

SERVICE_NAME = "wabridge"

# uvicorn loggers that otherwise print plain text
SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def _log_level() -> int:
    name = os.environ.get("LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


class JsonFormatter(logging.Formatter):
    """One JSON object per record, tagged with the active correlation ID."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "service": SERVICE_NAME,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = get_correlation_id()
        if correlation_id:
            entry["correlationId"] = correlation_id

        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            entry.update(extra_fields)

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str, ensure_ascii=False)


def _attach_json_handler(logger: logging.Logger) -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    logger.handlers = [handler]
    logger.setLevel(_log_level())
    logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """Logger writing JSON lines to stdout. Configured once per name."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        _attach_json_handler(logger)
    return logger


def configure_server_logging() -> None:
    """Switch uvicorn's loggers to JSON output."""
    for name in SERVER_LOGGERS:
        _attach_json_handler(logging.getLogger(name))
