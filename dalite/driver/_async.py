"""Asynchronous query and transaction executors.

Connections come from :meth:`Dialect.connect_async`: a native async driver
where one exists, otherwise the blocking driver offloaded to a worker thread.
Driver methods may return awaitables or plain values, so every call goes
through :func:`maybe_await`.
"""

import contextlib
from collections.abc import AsyncGenerator, Callable, Iterable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, TypeVar, Union

import anyio

from dalite.bulk import BulkPayload, BulkSource, build_insert_sql, csv_payload, json_payload, prepare_bulk_payload
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
from dalite.utils.sync_tools import maybe_await

if TYPE_CHECKING:
    from dalite.statement import StatementPattern
    from dalite.typing import StatementParameters

__all__ = ("AsyncCursor", "AsyncQueryExecutor", "AsyncTransactionExecutor")

logger = get_logger("driver")

T = TypeVar("T")


class AsyncCursor:
    """Async context manager for cursor management."""

    __slots__ = ("connection", "cursor")

    def __init__(self, connection: Any) -> None:
        self.connection = connection
        self.cursor: Any = None

    async def __aenter__(self) -> Any:
        self.cursor = await maybe_await(self.connection.cursor())
        return self.cursor

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self.cursor is not None:
            with anyio.CancelScope(shield=True), contextlib.suppress(Exception):
                await maybe_await(self.cursor.close())


async def _execute(cursor: Any, sql: str, parameters: Any) -> None:
    if parameters is None:
        await maybe_await(cursor.execute(sql))
    else:
        await maybe_await(cursor.execute(sql, parameters))


async def _close(connection: Any) -> None:
    with anyio.CancelScope(shield=True), contextlib.suppress(Exception):
        await maybe_await(connection.close())


class _AsyncConnectionMixin(CommonExecutorAttributes):
    __slots__ = ()

    @asynccontextmanager
    async def _connection(self, timeout: Optional[float] = None) -> "AsyncGenerator[Any, None]":
        connection = await self.dialect.connect_async(timeout=timeout)
        try:
            yield connection
        finally:
            await _close(connection)


class AsyncQueryExecutor(_AsyncConnectionMixin):
    """Async mirror of :class:`~dalite.driver.SyncQueryExecutor`.

    Cancellation propagates unchanged once the connection has been closed.
    """

    __slots__ = ()

    async def _run(self, operation: str, query: str, parameters: "StatementParameters", fetch: Any) -> TabularResult:
        query = self.validate_query(query)
        sql, driver_parameters = self.dialect.prepare(query, parameters)
        timer = StatementTimer()
        try:
            with wrap_driver_errors(self.dialect.driver_errors, sql):
                async with self._connection() as connection:
                    async with AsyncCursor(connection) as cursor:
                        await _execute(cursor, sql, driver_parameters)
                        result = await fetch(cursor)
                    await maybe_await(connection.commit())
        except Exception as exc:
            self.observability.record(timer, operation=operation, sql=query, parameters=parameters, error=exc)
            raise
        self.observability.record(
            timer, operation=operation, sql=query, parameters=parameters, rows_affected=reported_rows(result)
        )
        return result

    async def _fetch_all(self, cursor: Any) -> TabularResult:
        description = cursor.description
        rows = await maybe_await(cursor.fetchall()) if description is not None else None
        return self.build_result(description, rows, cursor.rowcount)

    async def _fetch_first(self, cursor: Any) -> TabularResult:
        description = cursor.description
        if description is None:
            return self.build_result(None, None, cursor.rowcount)
        row = await maybe_await(cursor.fetchone())
        return self.build_result(description, [] if row is None else [row], cursor.rowcount)

    async def get_data_table(self, query: str, parameters: "StatementParameters" = None) -> TabularResult:
        return await self._run("get_data_table", query, parameters, self._fetch_all)

    async def get_data_set(self, query: str, parameters: "StatementParameters" = None) -> DataSet:
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
            with wrap_driver_errors(self.dialect.driver_errors, query):
                async with self._connection() as connection:
                    async with AsyncCursor(connection) as cursor:
                        for sql, driver_parameters in prepared:
                            await _execute(cursor, sql, driver_parameters)
                            if cursor.description is not None:
                                data_set.append(await self._fetch_all(cursor))
                    await maybe_await(connection.commit())
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

    async def get_data_row(self, query: str, parameters: "StatementParameters" = None) -> "Optional[Row]":
        return (await self._run("get_data_row", query, parameters, self._fetch_first)).first()

    async def get_single_record(
        self, query: str, target: "type[T]", parameters: "StatementParameters" = None
    ) -> "Optional[T]":
        result = await self._run("get_single_record", query, parameters, self._fetch_first)
        return to_object(result.first(), target)

    async def get_record_list(
        self, query: str, target: "type[T]", parameters: "StatementParameters" = None
    ) -> "list[T]":
        return to_list(await self._run("get_record_list", query, parameters, self._fetch_all), target)

    async def get_single_value(self, query: str, target: Any = None, parameters: "StatementParameters" = None) -> Any:
        return to_scalar(await self._run("get_single_value", query, parameters, self._fetch_first), target)

    async def get_list(self, query: str, target: Any = None, parameters: "StatementParameters" = None) -> "list[Any]":
        return to_scalar_list(await self._run("get_list", query, parameters, self._fetch_all), target)

    async def get_count(self, query: str, parameters: "StatementParameters" = None) -> int:
        return int(to_scalar(await self._run("get_count", query, parameters, self._fetch_first), int))

    async def exists(self, query: str, parameters: "StatementParameters" = None) -> bool:
        return not (await self._run("exists", query, parameters, self._fetch_first)).is_empty

    async def get_paged_data_table(
        self,
        query: str,
        parameters: "StatementParameters" = None,
        page_number: int = 1,
        page_size: int = 10,
    ) -> TabularResult:
        query = self.validate_query(query)
        paged = self.dialect.apply_paging(query, page_number, page_size)
        return await self._run("get_paged_data_table", paged, parameters, self._fetch_all)

    async def get_dictionary(
        self,
        query: str,
        key_type: Any = None,
        value_type: Any = None,
        parameters: "StatementParameters" = None,
    ) -> "dict[Any, Any]":
        result = await self._run("get_dictionary", query, parameters, self._fetch_all)
        return to_dictionary(result, key_type, value_type)

    async def get_mapped_list(
        self, query: str, func: "Optional[Callable[[Row], T]]", parameters: "StatementParameters" = None
    ) -> "list[T]":
        if func is None:
            msg = "A row mapping function is required"
            raise InvalidArgumentError(msg)
        return map_rows(await self._run("get_mapped_list", query, parameters, self._fetch_all), func)


class AsyncTransactionExecutor(_AsyncConnectionMixin):
    """Async mirror of :class:`~dalite.driver.SyncTransactionExecutor`."""

    __slots__ = ()

    async def _rollback(self, connection: Any) -> "Optional[BaseException]":
        try:
            with anyio.CancelScope(shield=True):
                await maybe_await(connection.rollback())
        except Exception as exc:
            logger.error("Transaction rollback failed: %s", exc, exc_info=True)
            return exc
        return None

    async def save_changes(
        self,
        statements: "Optional[Iterable[StatementPattern]]",
        timeout_seconds: Optional[float] = DEFAULT_TRANSACTION_TIMEOUT,
    ) -> bool:
        """Execute ``statements`` in order inside one transaction.

        Every statement is additionally bounded by ``timeout_seconds``; an
        expired statement is rolled back and raised as :class:`TransactionError`
        chained to :class:`TimeoutError`. When the calling task is cancelled the
        rollback still runs and the cancellation propagates unchanged.
        """
        prepared = self.prepare_batch(statements)
        if not prepared:
            logger.debug("save_changes called with an empty batch")
            return True
        batch_sql = self.batch_text(prepared)
        deadline = timeout_seconds if timeout_seconds is not None and timeout_seconds > 0 else None
        timer = StatementTimer()
        with wrap_driver_errors(self.dialect.driver_errors, batch_sql):
            connection = await self.dialect.connect_async(timeout=timeout_seconds)
        try:
            await self._execute_batch(connection, prepared, timer, batch_sql, deadline)
        finally:
            await _close(connection)
        self.observability.record(
            timer,
            operation="save_changes",
            sql=batch_sql,
            parameters=self.batch_parameters(prepared),
            statement_count=len(prepared),
        )
        return True

    async def _execute_batch(
        self,
        connection: Any,
        prepared: "list[PreparedStatement]",
        timer: StatementTimer,
        batch_sql: str,
        deadline: Optional[float],
    ) -> None:
        index: Optional[int] = None
        try:
            async with AsyncCursor(connection) as cursor:
                for index, statement in enumerate(prepared):
                    with anyio.fail_after(deadline):
                        await _execute(cursor, statement.sql, statement.parameters)
            index = None
            await maybe_await(connection.commit())
        except BaseException as exc:
            rollback_error = await self._rollback(connection)
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

    async def execute_raw_sql(self, query: str, parameters: "StatementParameters" = None) -> int:
        """Run one non-query statement on its own connection and commit it."""
        query = self.validate_query(query)
        sql, driver_parameters = self.dialect.prepare(query, parameters)
        timer = StatementTimer()
        try:
            with wrap_driver_errors(self.dialect.driver_errors, sql):
                async with self._connection() as connection:
                    async with AsyncCursor(connection) as cursor:
                        await _execute(cursor, sql, driver_parameters)
                        rowcount = self.build_result(None, None, cursor.rowcount).rows_affected
                    await maybe_await(connection.commit())
        except Exception as exc:
            self.observability.record(timer, operation="execute_raw_sql", sql=query, parameters=parameters, error=exc)
            raise
        self.observability.record(
            timer, operation="execute_raw_sql", sql=query, parameters=parameters, rows_affected=rowcount
        )
        return rowcount

    async def bulk_insert(self, table_name: str, source: "Optional[BulkSource]") -> int:
        return await self._bulk_load(table_name, prepare_bulk_payload(table_name, source))

    async def bulk_insert_from_json(self, table_name: str, path: "Union[str, Path]", target: Any = None) -> int:
        content = await _read_source(table_name, path)
        return await self._bulk_load(table_name, json_payload(table_name, content, target))

    async def bulk_insert_from_csv(self, table_name: str, path: "Union[str, Path]") -> int:
        content = await _read_source(table_name, path)
        return await self._bulk_load(table_name, csv_payload(table_name, content))

    async def _bulk_load(self, table_name: str, payload: BulkPayload) -> int:
        if not payload.rows:
            return 0
        sql = build_insert_sql(self.dialect, table_name, payload.columns)
        driver_sql, parameter_sets = self.dialect.prepare_many(sql, payload.rows)
        timer = StatementTimer()
        connection = None
        try:
            connection = await self.dialect.connect_async()
            async with AsyncCursor(connection) as cursor:
                await maybe_await(cursor.executemany(driver_sql, parameter_sets))
            await maybe_await(connection.commit())
        except self.dialect.driver_errors as exc:
            if connection is not None:
                await self._rollback(connection)
            self.observability.record(
                timer, operation="bulk_insert", sql=sql, parameters=None, statement_count=len(payload), error=exc
            )
            msg = f"Bulk insert into {table_name} failed: {exc}"
            raise BulkLoadError(msg, table_name) from exc
        except BaseException:
            if connection is not None:
                await self._rollback(connection)
            raise
        finally:
            if connection is not None:
                await _close(connection)
        self.observability.record(
            timer, operation="bulk_insert", sql=sql, parameters=None, rows_affected=len(payload)
        )
        return len(payload)


async def _read_source(table_name: str, path: "Union[str, Path]") -> str:
    try:
        return await anyio.Path(path).read_text(encoding="utf-8-sig")
    except OSError as exc:
        msg = f"Unable to read bulk insert source {path}: {exc}"
        raise BulkLoadError(msg, table_name) from exc
