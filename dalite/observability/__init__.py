"""Public observability exports."""

from dalite.observability._config import DEFAULT_SQL_TRUNCATION_LENGTH, ObservabilityConfig, StatementObserver
from dalite.observability._observer import (
    StatementEvent,
    create_event,
    default_statement_observer,
    format_statement_event,
    loggable_parameters,
    trim_sql,
)
from dalite.observability._runtime import ObservabilityRuntime, StatementTimer

__all__ = (
    "DEFAULT_SQL_TRUNCATION_LENGTH",
    "ObservabilityConfig",
    "ObservabilityRuntime",
    "StatementEvent",
    "StatementObserver",
    "StatementTimer",
    "create_event",
    "default_statement_observer",
    "format_statement_event",
    "loggable_parameters",
    "trim_sql",
)
