"""Structured JSON logging for the durabus dispatcher.

Every dispatcher line carries the same optional context fields, built by
``log_context`` and rendered by ``DispatcherFormatter``.
"""

import json
import logging
from datetime import UTC, datetime
from typing import Any

from durabus.core.record import EventRecord

DISPATCHER_LOGGER_NAME = "durabus.dispatcher"

CONTEXT_FIELDS: tuple[str, ...] = ("event_id", "event_name", "handler", "error")


def log_context(event: EventRecord | None = None, **fields: Any) -> dict[str, Any]:
    """Build the ``extra=`` mapping for a dispatcher log line.

    Args:
        event: Record the line is about; contributes event_id and event_name.
        **fields: Overrides or additions, restricted to CONTEXT_FIELDS.
    """
    unknown = set(fields) - set(CONTEXT_FIELDS)
    if unknown:
        raise ValueError(f"Unknown log context fields: {sorted(unknown)}")
    context: dict[str, Any] = {}
    if event is not None:
        context["event_id"] = event.id
        context["event_name"] = event.name
    context.update(fields)
    return context


class DispatcherFormatter(logging.Formatter):
    """One JSON object per line, timestamped in UTC from the record's creation time."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            if hasattr(record, name):
                log_data[name] = getattr(record, name)
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


def configure_dispatcher_logger(level: int = logging.INFO) -> logging.Logger:
    """Configure and return the dispatcher logger.

    A JSON stream handler is installed only when the logger has no handlers
    yet, so handlers attached by the application are kept. The level is
    always applied.

    Args:
        level: The logging level to set. Defaults to logging.INFO.
    """
    logger = logging.getLogger(DISPATCHER_LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(DispatcherFormatter())
        logger.addHandler(handler)
        logger.propagate = False
    logger.setLevel(level)
    return logger
