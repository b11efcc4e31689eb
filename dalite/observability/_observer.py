"""Statement observer primitives for SQL execution events."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from time import time
from typing import Any

from dalite.observability._config import DEFAULT_SQL_TRUNCATION_LENGTH
from dalite.parameters.types import TypedParameter
from dalite.utils.logging import get_correlation_id, get_logger

__all__ = (
    "StatementEvent",
    "create_event",
    "default_statement_observer",
    "format_statement_event",
    "loggable_parameters",
    "trim_sql",
)


logger = get_logger("dalite.sql")


@dataclass(slots=True)
class StatementEvent:
    """Structured payload describing one executor call."""

    operation: str
    sql: str
    parameters: Any
    dialect: str
    rows_affected: "int | None"
    statement_count: int
    duration_ms: float
    started_at: float
    correlation_id: "str | None"
    error: "BaseException | None" = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def as_dict(self) -> "dict[str, Any]":
        """Return event payload as a dictionary."""

        return {
            "operation": self.operation,
            "sql": self.sql,
            "parameters": self.parameters,
            "dialect": self.dialect,
            "rows_affected": self.rows_affected,
            "statement_count": self.statement_count,
            "duration_ms": self.duration_ms,
            "started_at": self.started_at,
            "correlation_id": self.correlation_id,
            "error": repr(self.error) if self.error is not None else None,
        }


def trim_sql(sql: "str | None", max_length: int = DEFAULT_SQL_TRUNCATION_LENGTH) -> str:
    """Collapse a statement for logging.

    Args:
        sql: Statement text.
        max_length: Number of characters kept before ``"..."`` is appended.

    Returns:
        ``""`` for blank input, otherwise the stripped text cut to ``max_length``.
    """
    if sql is None or not sql.strip():
        return ""
    text = sql.strip()
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def loggable_parameters(parameters: Any) -> Any:
    """Render bound parameters for a log record, showing nulls as ``"null"``."""
    if parameters is None:
        return {}
    if isinstance(parameters, Mapping):
        return {str(name): _loggable_value(value) for name, value in parameters.items()}
    if isinstance(parameters, Sequence) and not isinstance(parameters, (str, bytes)):
        return [
            loggable_parameters(item) if isinstance(item, Mapping) else _loggable_value(item) for item in parameters
        ]
    return _loggable_value(parameters)


def _loggable_value(value: Any) -> Any:
    if value is None:
        return "null"
    inner = value.value if isinstance(value, TypedParameter) else value
    if inner is None:
        return "null"
    if isinstance(inner, (str, int, float, bool)):
        return inner
    return str(inner)


def format_statement_event(event: StatementEvent) -> str:
    """Create a concise human-readable representation of a statement event."""

    duration_label = f"{event.duration_ms:.2f}ms"
    if event.error is not None:
        return (
            f"{event.operation} failed after {duration_label} | Error={type(event.error).__name__}: {event.error}"
            f" | Sql={event.sql} | Params={event.parameters}"
        )
    if event.statement_count > 1:
        return (
            f"{event.operation} executed {event.statement_count} statements in {duration_label} | SqlBatch={event.sql}"
        )
    rows_label = event.rows_affected if event.rows_affected is not None else "unknown"
    return (
        f"{event.operation} executed in {duration_label} | Rows={rows_label} | Sql={event.sql}"
        f" | Params={event.parameters}"
    )


def default_statement_observer(event: StatementEvent) -> None:
    """Log statement execution payload under the ``dalite.sql`` logger."""

    extra = {"extra_fields": {key: value for key, value in event.as_dict().items() if key != "error"}}
    if event.error is not None:
        logger.error(
            format_statement_event(event),
            exc_info=(type(event.error), event.error, event.error.__traceback__),
            extra=extra,
        )
        return
    logger.info(format_statement_event(event), extra=extra)


def create_event(
    *,
    operation: str,
    sql: str,
    parameters: Any,
    dialect: str,
    duration_ms: float,
    rows_affected: "int | None" = None,
    statement_count: int = 1,
    error: "BaseException | None" = None,
    sql_truncation_length: int = DEFAULT_SQL_TRUNCATION_LENGTH,
    started_at: "float | None" = None,
) -> StatementEvent:
    """Factory helper used by the executors to build statement events."""

    return StatementEvent(
        operation=operation,
        sql=trim_sql(sql, sql_truncation_length),
        parameters=loggable_parameters(parameters),
        dialect=dialect,
        rows_affected=rows_affected,
        statement_count=statement_count,
        duration_ms=duration_ms,
        started_at=started_at if started_at is not None else time(),
        correlation_id=get_correlation_id(),
        error=error,
    )
