"""Structured JSON logging configuration."""

import json
import logging
import sys
from datetime import datetime
from typing import Any

from crm.core.request_context import get_request_id
from crm.settings import settings

_RESERVED_ATTRS = frozenset(
    (
        "name", "msg", "args", "created", "filename", "funcName", "levelname",
        "levelno", "lineno", "module", "msecs", "pathname", "process",
        "processName", "relativeCreated", "stack_info", "exc_info", "exc_text",
        "thread", "threadName", "taskName", "request_id", "message",
    )
)


class ContextFilter(logging.Filter):
    """Filter that adds the request id to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Add context variables to the log record."""
        record.request_id = get_request_id() or ""
        return True


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "severity": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if getattr(record, "request_id", ""):
            log_data["request_id"] = record.request_id

        # Add any extra fields passed via logger.info(..., extra={...})
        for key, value in record.__dict__.items():
            if key not in log_data and not key.startswith("_") and key not in _RESERVED_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, default=str)


def setup_logging() -> None:
    """Configure application logging."""
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(JSONFormatter())
    console_handler.addFilter(ContextFilter())

    root_logger.addHandler(console_handler)

    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(
        logging.INFO if settings.environment == "production" else logging.WARNING
    )
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)