"""
Structured logging configuration.

- Development: human-readable colored format
- Production: JSON format (log aggregator compatible)
- Log level: controlled via LOG_LEVEL env variable

Every record logged while a request is being served is stamped with the
request's ID, method and path by ``RequestContextFilter``, so a chain
of notification log lines can be traced back to the event that caused it.
Workflow code adds routing context through ``extra=``:

    logger.warning("Fallback broadcast", extra={"workflow_type": "DGR"})
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

from flask import g, has_request_context, request

_REQUEST_KEYS = ("request_id", "method", "path")

# Attributes promoted to top-level JSON keys when present on the record.
_EXTRA_KEYS = _REQUEST_KEYS + (
    "status",
    "duration_ms",
    "remote_addr",
    "workflow_type",
    "submission_id",
    "event_kind",
    "employee_id",
    "address",
)


class RequestContextFilter(logging.Filter):
    """Copy request ID / method / path onto records emitted inside a request."""

    def filter(self, record: logging.LogRecord) -> bool:
        if has_request_context():
            values = {
                "request_id": g.get("request_id"),
                "method": request.method,
                "path": request.path,
            }
            for key, value in values.items():
                if getattr(record, key, None) is None:
                    setattr(record, key, value)
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "line": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        entry.update(
            (key, getattr(record, key))
            for key in _EXTRA_KEYS
            if getattr(record, key, None) is not None
        )
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """Colored single-line format for development."""

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
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        tags = [getattr(record, key, None) for key in ("request_id", "submission_id")]
        ctx = "".join(f" [{tag}]" for tag in tags if tag)
        line = f"{color}{ts} {record.levelname:<8}{self.RESET} {record.name}{ctx}: {record.getMessage()}"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """
    Install one stderr handler on the root logger.

    JSON outside debug/testing, readable otherwise. LOG_LEVEL overrides the
    default level (INFO in production, DEBUG elsewhere).
    """
    is_testing = app.config.get("TESTING", False)
    is_prod = not app.config.get("DEBUG", False) and not is_testing

    level_name = os.getenv("LOG_LEVEL", "INFO" if is_prod else "DEBUG")
    level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if is_prod else ReadableFormatter())
    handler.addFilter(RequestContextFilter())
    handler.setLevel(level)

    root = logging.getLogger()
    # create_app runs once per test session and again in scripts; never stack handlers.
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for noisy in ("urllib3", "werkzeug", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not is_testing:
        app.logger.info("Logging configured: level=%s format=%s",
                        level_name, "JSON" if is_prod else "readable")
