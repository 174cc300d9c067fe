"""Logging setup for hosts embedding the data-access core.

Log lines carry the request id and tenant bound in log_context, plus the
allocation/query fields passed through ``extra``. JSON output is one object
per line; the plain format is meant for local development.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from ..config import Settings, get_settings
from .log_context import NO_REQUEST_ID, current_context

# Promoted to top-level JSON keys when set on a record
CONTEXT_FIELDS = (
    "request_id",
    "company_id",
    "branch_id",
    "scope_kind",
    "entity_type",
    "reference_number",
    "attempt",
    "lock_strategy",
)

PLAIN_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s %(scope_kind)s] %(name)s: %(message)s"


class LogContextFilter(logging.Filter):
    """Copy the bound log context onto each record.

    Fields given explicitly through ``extra`` win over bound ones.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in current_context().items():
            if getattr(record, key, None) is None:
                setattr(record, key, value)
        if getattr(record, "request_id", None) is None:
            record.request_id = NO_REQUEST_ID
        if getattr(record, "scope_kind", None) is None:
            record.scope_kind = "-"
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is None or value == "-":
                continue
            log_data[field] = value if isinstance(value, (int, float, bool)) else str(value)

        if record.exc_info:
            log_data["error"] = str(record.exc_info[1])
            log_data["traceback"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def build_handler(json_format: bool = True) -> logging.Handler:
    """Stdout handler with the log context filter and the chosen format."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if json_format else logging.Formatter(PLAIN_FORMAT))
    handler.addFilter(LogContextFilter())
    return handler


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Route the ``stockyard`` loggers according to LOG_LEVEL and LOG_JSON.

    Only the package logger is touched; the host keeps its root logger.
    """
    settings = settings or get_settings()
    level = getattr(logging, settings.LOG_LEVEL.upper())

    logger = logging.getLogger("stockyard")
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.addHandler(build_handler(settings.LOG_JSON))
    logger.propagate = False
