"""Structured logging configuration.

Session code logs with `extra=session_context(...)` so every record about a
session carries the same context fields, whichever formatter is installed.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

# Record attributes copied into log output, with their console labels
CONTEXT_FIELDS = (
    ("session_id", "session"),
    ("activity_index", "activity"),
    ("phase", "phase"),
)

# Third-party loggers that are only interesting when something goes wrong
QUIET_LOGGERS = ("uvicorn.access", "redis", "asyncio")


def session_context(session_id: str, **fields: Any) -> dict[str, Any]:
    """
    Build the `extra` mapping for a session log record.

    @param session_id - Session the record is about
    @param fields - Any of activity_index / phase
    @returns Mapping for the `extra` argument of a logging call
    """
    context = {"session_id": session_id}
    context.update({key: value for key, value in fields.items() if value is not None})
    return context


def _context_of(record: logging.LogRecord) -> dict[str, Any]:
    return {field: getattr(record, field) for field, _ in CONTEXT_FIELDS if hasattr(record, field)}


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log shipping."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context_of(record),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Rejected operations and failures point back at their source
        if record.levelno >= logging.WARNING:
            log_data["location"] = f"{record.filename}:{record.lineno}"

        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """Coloured single-line output for local runs."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        prefix = f"{color}[{timestamp}] {record.levelname:<8}{self.RESET}"

        context = _context_of(record)
        labels = "".join(
            f" {label}={context[field]}" for field, label in CONTEXT_FIELDS if field in context
        )

        message = record.getMessage()
        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)
        return f"{prefix}{labels} {message}"


def setup_logging(log_level: str = "INFO", json_logs: bool = False) -> None:
    """
    Route all logging to stdout with the chosen formatter.

    Replaces any handlers already on the root logger, so calling it twice
    (for example once per app lifespan) never duplicates output.

    @param log_level - Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    @param json_logs - Emit JSON lines instead of coloured text
    """
    level = logging.getLevelName(log_level.upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if json_logs else ConsoleFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
