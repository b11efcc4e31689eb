"""Configuration objects for statement observability."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from dalite.observability._observer import StatementEvent

__all__ = ("DEFAULT_SQL_TRUNCATION_LENGTH", "ObservabilityConfig", "StatementObserver")

DEFAULT_SQL_TRUNCATION_LENGTH = 500

StatementObserver = Callable[["StatementEvent"], None]


@dataclass(slots=True)
class ObservabilityConfig:
    """Controls how executed statements are reported.

    Attributes:
        sql_truncation_length: Maximum number of SQL characters kept on an event.
        statement_observers: Extra callables receiving every statement event.
        log_statements: Run the default logging observer in addition to ``statement_observers``.
    """

    sql_truncation_length: int = DEFAULT_SQL_TRUNCATION_LENGTH
    statement_observers: "tuple[StatementObserver, ...] | None" = None
    log_statements: bool = True

    def __post_init__(self) -> None:
        if self.statement_observers is not None:
            self.statement_observers = tuple(self.statement_observers)
        if self.sql_truncation_length < 0:
            self.sql_truncation_length = 0

    def copy(self) -> "ObservabilityConfig":
        """Return a copy to avoid sharing mutable state."""

        observers = tuple(self.statement_observers) if self.statement_observers else None
        return ObservabilityConfig(
            sql_truncation_length=self.sql_truncation_length,
            statement_observers=observers,
            log_statements=self.log_statements,
        )

    @classmethod
    def merge(
        cls, base_config: "ObservabilityConfig | None", override_config: "ObservabilityConfig | None"
    ) -> "ObservabilityConfig":
        """Merge factory-level and context-level configuration objects."""

        if base_config is None and override_config is None:
            return cls()

        base = base_config.copy() if base_config else cls()
        override = override_config
        if override is None:
            return base

        observers: "tuple[StatementObserver, ...] | None"
        if base.statement_observers and override.statement_observers:
            observers = base.statement_observers + tuple(override.statement_observers)
        elif override.statement_observers:
            observers = tuple(override.statement_observers)
        else:
            observers = base.statement_observers

        return ObservabilityConfig(
            sql_truncation_length=override.sql_truncation_length,
            statement_observers=observers,
            log_statements=override.log_statements,
        )
