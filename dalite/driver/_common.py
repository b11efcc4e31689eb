"""Attributes and helpers shared by the sync and async executors."""

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, Any, Optional

from dalite.core.result import TabularResult
from dalite.exceptions import InvalidArgumentError
from dalite.observability import ObservabilityConfig, ObservabilityRuntime
from dalite.statement import StatementPattern

if TYPE_CHECKING:
    from dalite.dialects.base import Dialect

__all__ = (
    "DEFAULT_TRANSACTION_TIMEOUT",
    "CommonExecutorAttributes",
    "PreparedStatement",
    "failure_message",
    "reported_rows",
)

DEFAULT_TRANSACTION_TIMEOUT = 30


class PreparedStatement:
    """Driver-ready SQL and parameters for one statement of a batch."""

    __slots__ = ("parameters", "query", "sql")

    def __init__(self, query: str, sql: str, parameters: Any) -> None:
        self.query = query
        self.sql = sql
        self.parameters = parameters

    def __repr__(self) -> str:
        return f"PreparedStatement(sql={self.sql!r}, parameters={self.parameters!r})"


class CommonExecutorAttributes:
    """State and pure helpers shared by every executor.

    Executors hold no connection; each call opens and closes its own.
    """

    __slots__ = ("dialect", "observability")

    def __init__(self, dialect: "Dialect", observability: "Optional[ObservabilityConfig]" = None) -> None:
        self.dialect = dialect
        self.observability = ObservabilityRuntime(observability, dialect.name)

    def prepare_batch(self, statements: "Optional[Iterable[StatementPattern]]") -> "list[PreparedStatement]":
        """Validate a batch and prepare every statement before any I/O.

        Each statement gets its own parameter set, so bindings never leak
        from one statement to the next.

        Raises:
            InvalidArgumentError: If ``statements`` is ``None``, holds a non-pattern,
                or a parameter cannot be bound.
        """
        if statements is None:
            msg = "Statements must not be None"
            raise InvalidArgumentError(msg)
        prepared: list[PreparedStatement] = []
        for position, statement in enumerate(statements):
            if not isinstance(statement, StatementPattern):
                msg = f"Statement {position} is {type(statement).__name__}, expected StatementPattern"
                raise InvalidArgumentError(msg)
            sql, parameters = self.dialect.prepare(statement.query, statement.merged_parameters())
            prepared.append(PreparedStatement(statement.query, sql, parameters))
        return prepared

    @staticmethod
    def batch_text(prepared: "Sequence[PreparedStatement]") -> str:
        return "; ".join(statement.query.strip().rstrip(";") for statement in prepared)

    @staticmethod
    def batch_parameters(prepared: "Sequence[PreparedStatement]") -> "list[Any]":
        return [statement.parameters for statement in prepared]

    @staticmethod
    def validate_query(query: Any) -> str:
        if not isinstance(query, str) or not query.strip():
            msg = "Query text must be a non-empty string"
            raise InvalidArgumentError(msg)
        return query

    @staticmethod
    def build_result(description: Any, rows: "Optional[Iterable[Sequence[Any]]]", rowcount: Any) -> TabularResult:
        """Build a :class:`TabularResult` from cursor state after a fetch."""
        if description is None:
            return TabularResult(rows_affected=_as_rowcount(rowcount))
        result = TabularResult.from_cursor(description, rows or ())
        result.rows_affected = _as_rowcount(rowcount)
        return result


def _as_rowcount(rowcount: Any) -> int:
    try:
        return int(rowcount)
    except (TypeError, ValueError):
        return -1


def reported_rows(result: TabularResult) -> int:
    """Rows returned by a query, or the driver's affected count for a non-query."""
    return len(result) if result.columns else result.rows_affected


def failure_message(exc: BaseException, index: Optional[int], total: int) -> str:
    if index is None:
        return f"Transaction commit failed: {exc}"
    return f"Statement {index + 1} of {total} failed, transaction rolled back: {exc}"
