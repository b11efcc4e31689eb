"""Event dispatch shared by the sync and async executors."""

from time import perf_counter, time
from typing import Any

from dalite.observability._config import ObservabilityConfig
from dalite.observability._observer import StatementEvent, create_event, default_statement_observer
from dalite.utils.logging import get_logger

__all__ = ("ObservabilityRuntime", "StatementTimer")

logger = get_logger("dalite.observability")


class StatementTimer:
    """Measures one executor call from construction to :meth:`elapsed_ms`."""

    __slots__ = ("_start", "started_at")

    def __init__(self) -> None:
        self.started_at = time()
        self._start = perf_counter()

    def elapsed_ms(self) -> float:
        return (perf_counter() - self._start) * 1000.0


class ObservabilityRuntime:
    """Builds statement events and fans them out to the configured observers."""

    __slots__ = ("config", "dialect_name")

    def __init__(self, config: "ObservabilityConfig | None", dialect_name: str) -> None:
        self.config = config.copy() if config is not None else ObservabilityConfig()
        self.dialect_name = dialect_name

    def record(
        self,
        timer: StatementTimer,
        *,
        operation: str,
        sql: str,
        parameters: Any,
        rows_affected: "int | None" = None,
        statement_count: int = 1,
        error: "BaseException | None" = None,
    ) -> StatementEvent:
        """Create an event for a finished call and emit it.

        Args:
            timer: Timer started when the call began.
            operation: Public operation name, e.g. ``"get_data_table"``.
            sql: Statement text, or the joined batch text for transactions.
            parameters: Bound parameters.
            rows_affected: Rows returned or affected, when known.
            statement_count: Number of statements executed by the call.
            error: The failure, when the call did not succeed.

        Returns:
            The emitted event.
        """
        event = create_event(
            operation=operation,
            sql=sql,
            parameters=parameters,
            dialect=self.dialect_name,
            duration_ms=timer.elapsed_ms(),
            rows_affected=rows_affected,
            statement_count=statement_count,
            error=error,
            sql_truncation_length=self.config.sql_truncation_length,
            started_at=timer.started_at,
        )
        self.emit(event)
        return event

    def emit(self, event: StatementEvent) -> None:
        """Deliver an event to every observer.

        A failing observer is logged and never interrupts the statement it reports on.
        """
        observers = list(self.config.statement_observers or ())
        if self.config.log_statements:
            observers.insert(0, default_statement_observer)
        for observer in observers:
            try:
                observer(event)
            except Exception:
                logger.warning("Statement observer %r failed", observer, exc_info=True)
