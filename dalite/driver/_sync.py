"""Synchronous query and transaction executors."""

import contextlib
from collections.abc import Callable, Generator, Iterable
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, TypeVar, Union

from dalite.bulk import (
    BulkPayload,
    BulkSource,
    build_insert_sql,
    csv_payload,
    json_payload,
    prepare_bulk_payload,
    read_text,
)
from dalite.core.materialize import map_rows, to_dictionary, to_list, to_object, to_scalar, to_scalar_list
from dalite.core.result import DataSet, Row, TabularResult
from dalite.core.splitter import split_sql_script
from dalite.driver._common import (
    DEFAULT_TRANSACTION_TIMEOUT,
    CommonExecutorAttributes,
    PreparedStatement,
    failure_message,
    reported_rows,
)
from dalite.exceptions import BulkLoadError, InvalidArgumentError, TransactionError, wrap_driver_errors
from dalite.observability import StatementTimer
from dalite.utils.logging import get_logger

if TYPE_CHECKING:
    from dalite.statement import StatementPattern
    from dalite.typing import StatementParameters

__all__ = ("SyncCursor", "SyncQueryExecutor", "SyncTransactionExecutor")

logger = get_logger("driver")

T = TypeVar("T")


class SyncCursor:
    """Context manager for DB-API cursor management."""

    __slots__ = ("connection", "cursor")

    def __init__(self, connection: Any) -> None:
        self.connection = connection
        self.cursor: Any = None

    def __enter__(self) -> Any:
        self.cursor = self.connection.cursor()
        return self.cursor

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self.cursor is not None:
            with contextlib.suppress(Exception):
                self.cursor.close()


def _execute(cursor: Any, sql: str, parameters: Any) -> None:
    if parameters is None:
        cursor.execute(sql)
    else:
        cursor.execute(sql, parameters)


class _SyncConnectionMixin(CommonExecutorAttributes):
    __slots__ = ()

    @contextmanager
    def _connection(self, timeout: Optional[float] = None) -> "Generator[Any, None, None]":
        connection = self.dialect.connect(timeout=timeout)
        try:
            yield connection
        finally:
            with contextlib.suppress(Exception):
                connection.close()


class SyncQueryExecutor(_SyncConnectionMixin):
    """Runs one statement per call on its own connection and returns fully fetched results."""

    __slots__ = ()

    def _run(
        self,
        operation: str,
        query: str,
        parameters: "StatementParameters",
        fetch: "Callable[[Any], TabularResult]",
    ) -> TabularResult:
        query = self.validate_query(query)
        sql, driver_parameters = self.dialect.prepare(query, parameters)
        timer = StatementTimer()
        try:
            with wrap_driver_errors(self.dialect.driver_errors, sql), self._connection() as connection:
                with SyncCursor(connection) as cursor:
                    _execute(cursor, sql, driver_parameters)
                    result = fetch(cursor)
                connection.commit()
        except Exception as exc:
            self.observability.record(timer, operation=operation, sql=query, parameters=parameters, error=exc)
            raise
        self.observability.record(
            timer, operation=operation, sql=query, parameters=parameters, rows_affected=reported_rows(result)
        )
        return result

    def _fetch_all(self, cursor: Any) -> TabularResult:
        description = cursor.description
        rows = cursor.fetchall() if description is not None else None
        return self.build_result(description, rows, cursor.rowcount)

    def _fetch_first(self, cursor: Any) -> TabularResult:
        description = cursor.description
        if description is None:
            return self.build_result(None, None, cursor.rowcount)
        row = cursor.fetchone()
        return self.build_result(description, [] if row is None else [row], cursor.rowcount)

    def get_data_table(self, query: str, parameters: "StatementParameters" = None) -> TabularResult:
        """Execute ``query`` and return every row."""
        return self._run("get_data_table", query, parameters, self._fetch_all)

    def get_data_set(self, query: str, parameters: "StatementParameters" = None) -> DataSet:
        """Execute a multi-statement script on one connection.

        Returns:
            One result per statement that produced rows, in script order.
        """
        query = self.validate_query(query)
        statements = split_sql_script(query, self.dialect.sqlglot_dialect)
        if not statements:
            msg = "The script contains no statements"
            raise InvalidArgumentError(msg)
        prepared = [self.dialect.prepare(statement, parameters) for statement in statements]
        data_set = DataSet()
        timer = StatementTimer()
        try:
            with wrap_driver_errors(self.dialect.driver_errors, query), self._connection() as connection:
                with SyncCursor(connection) as cursor:
                    for sql, driver_parameters in prepared:
                        _execute(cursor, sql, driver_parameters)
                        if cursor.description is not None:
                            data_set.append(self._fetch_all(cursor))
                connection.commit()
        except Exception as exc:
            self.observability.record(
                timer,
                operation="get_data_set",
                sql=query,
                parameters=parameters,
                statement_count=len(prepared),
                error=exc,
            )
            raise
        self.observability.record(
            timer,
            operation="get_data_set",
            sql=query,
            parameters=parameters,
            rows_affected=sum(len(table) for table in data_set),
            statement_count=len(prepared),
        )
        return data_set

    def get_data_row(self, query: str, parameters: "StatementParameters" = None) -> "Optional[Row]":
        """Return the first row, or ``None`` when the query produced no rows."""
        return self._run("get_data_row", query, parameters, self._fetch_first).first()

    def get_single_record(
        self, query: str, target: "type[T]", parameters: "StatementParameters" = None
    ) -> "Optional[T]":
        """Materialize the first row into ``target``."""
        return to_object(self._run("get_single_record", query, parameters, self._fetch_first).first(), target)

    def get_record_list(self, query: str, target: "type[T]", parameters: "StatementParameters" = None) -> "list[T]":
        """Materialize every row into ``target``."""
        return to_list(self._run("get_record_list", query, parameters, self._fetch_all), target)

    def get_single_value(self, query: str, target: Any = None, parameters: "StatementParameters" = None) -> Any:
        """Return the first column of the first row, or the zero value of ``target``."""
        return to_scalar(self._run("get_single_value", query, parameters, self._fetch_first), target)

    def get_list(self, query: str, target: Any = None, parameters: "StatementParameters" = None) -> "list[Any]":
        """Return the first column of every row."""
        return to_scalar_list(self._run("get_list", query, parameters, self._fetch_all), target)

    def get_count(self, query: str, parameters: "StatementParameters" = None) -> int:
        """Run a caller-built counting query and return its value as ``int``."""
        return int(to_scalar(self._run("get_count", query, parameters, self._fetch_first), int))

    def exists(self, query: str, parameters: "StatementParameters" = None) -> bool:
        """Report whether ``query`` produced at least one row."""
        return not self._run("exists", query, parameters, self._fetch_first).is_empty

    def get_paged_data_table(
        self,
        query: str,
        parameters: "StatementParameters" = None,
        page_number: int = 1,
        page_size: int = 10,
    ) -> TabularResult:
        """Return one page of ``query``; invalid paging input is clamped to page 1 of size 10."""
        query = self.validate_query(query)
        paged = self.dialect.apply_paging(query, page_number, page_size)
        return self._run("get_paged_data_table", paged, parameters, self._fetch_all)

    def get_dictionary(
        self,
        query: str,
        key_type: Any = None,
        value_type: Any = None,
        parameters: "StatementParameters" = None,
    ) -> "dict[Any, Any]":
        """Map the first column to the second; null keys and values are skipped, the last duplicate wins."""
        return to_dictionary(self._run("get_dictionary", query, parameters, self._fetch_all), key_type, value_type)

    def get_mapped_list(
        self, query: str, func: "Optional[Callable[[Row], T]]", parameters: "StatementParameters" = None
    ) -> "list[T]":
        """Apply ``func`` to every row."""
        if func is None:
            msg = "A row mapping function is required"
            raise InvalidArgumentError(msg)
        return map_rows(self._run("get_mapped_list", query, parameters, self._fetch_all), func)


class SyncTransactionExecutor(_SyncConnectionMixin):
    """Runs batches of statements atomically and performs bulk loads."""

    __slots__ = ()

    def _rollback(self, connection: Any) -> "Optional[BaseException]":
        try:
            connection.rollback()
        except Exception as exc:
            logger.error("Transaction rollback failed: %s", exc, exc_info=True)
            return exc
        return None

    def save_changes(
        self,
        statements: "Optional[Iterable[StatementPattern]]",
        timeout_seconds: Optional[float] = DEFAULT_TRANSACTION_TIMEOUT,
    ) -> bool:
        """Execute ``statements`` in order inside one transaction.

        Args:
            statements: The batch. An empty batch succeeds without connecting.
            timeout_seconds: Statement timeout forwarded to the driver.

        Raises:
            InvalidArgumentError: Before any I/O, for a ``None`` batch or an unbindable parameter.
            TransactionError: When a statement or the commit fails. The
                transaction has been rolled back; ``statement_index`` names the
                failing statement and ``rollback_error`` holds a failed rollback.

        Returns:
            ``True`` once the batch is committed.
        """
        prepared = self.prepare_batch(statements)
        if not prepared:
            logger.debug("save_changes called with an empty batch")
            return True
        batch_sql = self.batch_text(prepared)
        timer = StatementTimer()
        with wrap_driver_errors(self.dialect.driver_errors, batch_sql):
            connection = self.dialect.connect(timeout=timeout_seconds)
        try:
            self._execute_batch(connection, prepared, timer, batch_sql)
        finally:
            with contextlib.suppress(Exception):
                connection.close()
        self.observability.record(
            timer,
            operation="save_changes",
            sql=batch_sql,
            parameters=self.batch_parameters(prepared),
            statement_count=len(prepared),
        )
        return True

    def _execute_batch(
        self, connection: Any, prepared: "list[PreparedStatement]", timer: StatementTimer, batch_sql: str
    ) -> None:
        index: Optional[int] = None
        try:
            with SyncCursor(connection) as cursor:
                for index, statement in enumerate(prepared):
                    _execute(cursor, statement.sql, statement.parameters)
            index = None
            connection.commit()
        except BaseException as exc:
            rollback_error = self._rollback(connection)
            if not isinstance(exc, Exception):
                raise
            self.observability.record(
                timer,
                operation="save_changes",
                sql=batch_sql,
                parameters=self.batch_parameters(prepared),
                statement_count=len(prepared),
                error=exc,
            )
            raise TransactionError(
                failure_message(exc, index, len(prepared)), statement_index=index, rollback_error=rollback_error
            ) from exc

    def execute_raw_sql(self, query: str, parameters: "StatementParameters" = None) -> int:
        """Run one non-query statement, such as DDL, on its own connection and commit it.

        Returns:
            The driver's affected row count, ``-1`` when unknown.
        """
        query = self.validate_query(query)
        sql, driver_parameters = self.dialect.prepare(query, parameters)
        timer = StatementTimer()
        try:
            with wrap_driver_errors(self.dialect.driver_errors, sql), self._connection() as connection:
                with SyncCursor(connection) as cursor:
                    _execute(cursor, sql, driver_parameters)
                    rowcount = self.build_result(None, None, cursor.rowcount).rows_affected
                connection.commit()
        except Exception as exc:
            self.observability.record(timer, operation="execute_raw_sql", sql=query, parameters=parameters, error=exc)
            raise
        self.observability.record(
            timer, operation="execute_raw_sql", sql=query, parameters=parameters, rows_affected=rowcount
        )
        return rowcount

    def bulk_insert(self, table_name: str, source: "Optional[BulkSource]") -> int:
        """Insert every row of a tabular result or every object of a list into ``table_name``.

        Returns:
            The number of rows inserted; an empty source inserts nothing and returns 0.
        """
        return self._bulk_load(table_name, prepare_bulk_payload(table_name, source))

    def bulk_insert_from_json(self, table_name: str, path: "Union[str, Path]", target: Any = None) -> int:
        """Insert the objects of a JSON array file into ``table_name``."""
        return self._bulk_load(table_name, json_payload(table_name, _read_source(table_name, path), target))

    def bulk_insert_from_csv(self, table_name: str, path: "Union[str, Path]") -> int:
        """Insert the rows of a CSV file with a header row into ``table_name``."""
        return self._bulk_load(table_name, csv_payload(table_name, _read_source(table_name, path)))

    def _bulk_load(self, table_name: str, payload: BulkPayload) -> int:
        if not payload.rows:
            return 0
        sql = build_insert_sql(self.dialect, table_name, payload.columns)
        driver_sql, parameter_sets = self.dialect.prepare_many(sql, payload.rows)
        timer = StatementTimer()
        connection = None
        try:
            connection = self.dialect.connect()
            with SyncCursor(connection) as cursor:
                cursor.executemany(driver_sql, parameter_sets)
            connection.commit()
        except self.dialect.driver_errors as exc:
            if connection is not None:
                self._rollback(connection)
            self.observability.record(
                timer, operation="bulk_insert", sql=sql, parameters=None, statement_count=len(payload), error=exc
            )
            msg = f"Bulk insert into {table_name} failed: {exc}"
            raise BulkLoadError(msg, table_name) from exc
        finally:
            if connection is not None:
                with contextlib.suppress(Exception):
                    connection.close()
        self.observability.record(
            timer, operation="bulk_insert", sql=sql, parameters=None, rows_affected=len(payload)
        )
        return len(payload)


def _read_source(table_name: str, path: "Union[str, Path]") -> str:
    try:
        return read_text(path)
    except OSError as exc:
        msg = f"Unable to read bulk insert source {path}: {exc}"
        raise BulkLoadError(msg, table_name) from exc
