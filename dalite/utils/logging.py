"""Logger namespacing and JSON log records for dalite.

Every library logger lives under ``dalite``. Statement events attach their
payload as ``extra_fields``, which :class:`StructuredFormatter` merges into
the JSON entry along with the active correlation id.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any

from dalite._serialization import encode_json

if TYPE_CHECKING:
    from collections.abc import Iterable
    from logging import LogRecord

__all__ = (
    "CorrelationIDFilter",
    "StructuredFormatter",
    "configure_logging",
    "correlation_id_var",
    "get_correlation_id",
    "get_logger",
    "set_correlation_id",
)

ROOT_LOGGER_NAME = "dalite"
SIMPLE_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

correlation_id_var: ContextVar[str | None] = ContextVar("dalite_correlation_id", default=None)


def set_correlation_id(correlation_id: str | None) -> None:
    """Tag statement events in the current context; ``None`` clears the tag."""
    correlation_id_var.set(correlation_id)


def get_correlation_id() -> str | None:
    return correlation_id_var.get()


class StructuredFormatter(logging.Formatter):
    """Render each record as one JSON object per line."""

    def format(self, record: LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        correlation_id = get_correlation_id()
        if correlation_id:
            entry["correlation_id"] = correlation_id
        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            entry.update(extra_fields)
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return encode_json(entry)


class CorrelationIDFilter(logging.Filter):
    """Copy the active correlation id onto records so plain formatters can use it."""

    def filter(self, record: LogRecord) -> bool:
        correlation_id = get_correlation_id()
        if correlation_id:
            record.correlation_id = correlation_id  # type: ignore[attr-defined]
        return True


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``dalite`` or a child of it.

    Args:
        name: Child name such as ``"driver"``; a name already under
            ``dalite`` is used as given.

    Returns:
        The logger, carrying exactly one :class:`CorrelationIDFilter`.
    """
    if name is None:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name != ROOT_LOGGER_NAME and not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    logger = logging.getLogger(name)
    if not any(isinstance(existing, CorrelationIDFilter) for existing in logger.filters):
        logger.addFilter(CorrelationIDFilter())
    return logger


def configure_logging(
    level: str = "INFO",
    format_style: str = "structured",
    handlers: Iterable[logging.Handler] | None = None,
) -> None:
    """Route dalite logs to stdout, replacing any handlers installed earlier.

    Args:
        level: Level name, case-insensitive.
        format_style: ``"structured"`` for JSON lines, anything else for plain text.
        handlers: Extra handlers attached next to the stdout handler.
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level.upper())
    root_logger.handlers.clear()

    stream_handler = logging.StreamHandler(sys.stdout)
    if format_style == "structured":
        stream_handler.setFormatter(StructuredFormatter())
    else:
        stream_handler.setFormatter(logging.Formatter(SIMPLE_FORMAT))
    root_logger.addHandler(stream_handler)
    for handler in handlers or ():
        root_logger.addHandler(handler)
    root_logger.propagate = False

    root_logger.debug(
        "Logging configured",
        extra={"extra_fields": {"level": level.upper(), "format_style": format_style}},
    )
