"""Async executors: SQLite through a worker thread plus mocked native drivers."""

from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import anyio
import pytest

from dalite.context import DataContext
from dalite.driver import AsyncTransactionExecutor
from dalite.exceptions import BulkLoadError, ExecutionError, InvalidArgumentError, TransactionError
from dalite.observability import StatementEvent

pytestmark = pytest.mark.anyio


class Account:
    id: int
    name: str

    def __init__(self) -> None:
        self.id = 0
        self.name = ""


async def test_async_queries(context: DataContext) -> None:
    table = await context.get_data_table_async("SELECT id, name FROM users ORDER BY id")
    assert len(table) == 5
    row = await context.get_data_row_async("SELECT name FROM users WHERE id = @id", {"id": 5})
    assert row is not None
    assert row["name"] == "Eve"
    account = await context.get_single_record_async("SELECT id, name FROM users WHERE id = 2", Account)
    assert account is not None
    assert (account.id, account.name) == (2, "Bob")
    accounts = await context.get_record_list_async("SELECT id, name FROM users WHERE active = 0 ORDER BY id", Account)
    assert [item.name for item in accounts] == ["Bob", "Eve"]
    assert await context.get_single_value_async("SELECT MAX(age) FROM users", int) == 45
    assert await context.get_list_async("SELECT id FROM users WHERE age IS NULL", int) == [3]
    assert await context.get_count_async("SELECT COUNT(*) FROM users") == 5
    assert await context.exists_async("SELECT 1 FROM users WHERE name = @name", {"name": "Dave"})
    assert not await context.exists_async("SELECT 1 FROM users WHERE name = 'Zed'")


async def test_async_data_set_paging_and_mappings(context: DataContext) -> None:
    data_set = await context.get_data_set_async("SELECT 1 AS a; SELECT name FROM users WHERE id = @id;", {"id": 1})
    assert [table[0][0] for table in data_set] == [1, "Alice"]
    page = await context.get_paged_data_table_async("SELECT name FROM users ORDER BY id", None, 2, 3)
    assert [row["name"] for row in page] == ["Dave", "Eve"]
    ages = await context.get_dictionary_async("SELECT name, age FROM users", str, int)
    assert ages == {"Alice": 31, "Bob": 27, "Dave": 45, "Eve": 38}
    names = await context.get_mapped_list_async(
        "SELECT name FROM users WHERE id < 3 ORDER BY id", lambda row: row["name"].upper()
    )
    assert names == ["ALICE", "BOB"]


async def test_async_query_errors(context: DataContext, recorded_events: list[StatementEvent]) -> None:
    with pytest.raises(ExecutionError):
        await context.get_data_table_async("SELECT nope FROM users")
    assert recorded_events[-1].error is not None
    with pytest.raises(InvalidArgumentError):
        await context.get_mapped_list_async("SELECT 1", None)


async def test_async_save_changes_atomicity(context: DataContext, row_counter: Callable[[str], int]) -> None:
    ok = [context.add_query("INSERT INTO RollbackTestUser (id, name) VALUES (@id, @name)", {"id": 7, "name": "seven"})]
    assert await context.save_changes_async(ok) is True
    failing = [
        context.add_query("INSERT INTO RollbackTestUser (id, name) VALUES (@id, @name)", {"id": 8, "name": "eight"}),
        context.add_query("INSERT INTO RollbackTestUser (id, name) VALUES (@id, @name)", {"id": 7, "name": "dup"}),
    ]
    with pytest.raises(TransactionError) as exc_info:
        await context.save_changes_async(failing)
    assert exc_info.value.statement_index == 1
    assert row_counter("RollbackTestUser") == 1
    assert await context.save_changes_async([]) is True
    with pytest.raises(InvalidArgumentError):
        await context.save_changes_async(None)


async def test_async_raw_sql_and_bulk(context: DataContext, tmp_path: Path, row_counter: Callable[[str], int]) -> None:
    assert await context.execute_raw_sql_async("DELETE FROM users WHERE active = @active", {"active": 0}) == 2
    assert await context.bulk_insert_async("products", [{"sku": "A", "title": "Axe", "price": 9.0}]) == 1
    json_source = tmp_path / "products.json"
    json_source.write_text('[{"sku": "B", "title": "Bag", "price": 2}]')
    assert await context.bulk_insert_from_json_async("products", json_source) == 1
    csv_source = tmp_path / "products.csv"
    csv_source.write_text("sku,title,price\nC,Cap,1\nD,Den,2\n")
    assert await context.bulk_insert_from_csv_async("products", csv_source) == 2
    assert row_counter("products") == 4
    assert await context.bulk_insert_async("products", []) == 0
    with pytest.raises(BulkLoadError):
        await context.bulk_insert_async("products", [{"sku": "A", "title": "again", "price": 1.0}])
    with pytest.raises(BulkLoadError):
        await context.bulk_insert_from_csv_async("products", tmp_path / "absent.csv")
    assert row_counter("products") == 4


def _mock_async_dialect(execute: Any) -> "tuple[MagicMock, MagicMock]":
    cursor = MagicMock()
    cursor.execute = execute
    cursor.close = AsyncMock()
    connection = MagicMock()
    connection.cursor.return_value = cursor
    connection.commit = AsyncMock()
    connection.rollback = AsyncMock()
    connection.close = AsyncMock()
    dialect = MagicMock()
    dialect.name = "mock"
    dialect.driver_errors = (RuntimeError,)
    dialect.connect_async = AsyncMock(return_value=connection)
    dialect.prepare.side_effect = lambda sql, parameters: (sql, None)
    return dialect, connection


async def _slow_execute(*args: Any) -> None:
    await anyio.sleep(5)


async def test_statement_timeout_rolls_back() -> None:
    dialect, connection = _mock_async_dialect(_slow_execute)
    executor = AsyncTransactionExecutor(dialect)
    with pytest.raises(TransactionError) as exc_info:
        await executor.save_changes([DataContext.add_query("UPDATE t SET a = 1")], timeout_seconds=0.05)
    assert isinstance(exc_info.value.__cause__, TimeoutError)
    assert exc_info.value.statement_index == 0
    connection.rollback.assert_awaited_once_with()
    connection.commit.assert_not_awaited()
    connection.close.assert_awaited_once_with()


async def test_cancellation_rolls_back_and_propagates() -> None:
    dialect, connection = _mock_async_dialect(_slow_execute)
    executor = AsyncTransactionExecutor(dialect)
    with anyio.move_on_after(0.05) as scope:
        await executor.save_changes([DataContext.add_query("UPDATE t SET a = 1")], timeout_seconds=None)
    assert scope.cancelled_caught
    connection.rollback.assert_awaited_once_with()
    connection.close.assert_awaited_once_with()


async def test_async_connect_failure_is_execution_error() -> None:
    dialect, _ = _mock_async_dialect(AsyncMock())
    dialect.connect_async.side_effect = RuntimeError("refused")
    executor = AsyncTransactionExecutor(dialect)
    with pytest.raises(ExecutionError):
        await executor.save_changes([DataContext.add_query("UPDATE t SET a = 1")])
