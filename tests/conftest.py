from __future__ import annotations

import sqlite3
from collections.abc import Generator
from pathlib import Path
from typing import Any, ClassVar, Optional

import pytest

from dalite.context import DataContext
from dalite.dialects import Dialect, register_dialect
from dalite.observability import ObservabilityConfig, StatementEvent
from dalite.parameters import ParameterStyle

pytestmark = pytest.mark.anyio
here = Path(__file__).parent
root_path = here.parent


class SQLiteDialect(Dialect):
    """In-process dialect used to exercise the executors against a real engine."""

    name: ClassVar[str] = "sqlite"
    sqlglot_dialect: ClassVar[Optional[str]] = "sqlite"
    parameter_style: ClassVar[ParameterStyle] = ParameterStyle.NAMED_COLON

    __slots__ = ()

    @property
    def driver_errors(self) -> tuple[type[BaseException], ...]:
        return (sqlite3.Error,)

    def paging_clause(self, offset: int, size: int) -> str:
        return f"LIMIT {size} OFFSET {offset}"

    def connect(self, *, timeout: Optional[float] = None) -> Any:
        return sqlite3.connect(self.connection_string, check_same_thread=False)


register_dialect("sqlite", SQLiteDialect)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def database_path(tmp_path: Path) -> Path:
    path = tmp_path / "dalite.db"
    connection = sqlite3.connect(path)
    connection.executescript(
        """
        CREATE TABLE users (
            id INTEGER PRIMARY KEY,
            name TEXT NOT NULL,
            email TEXT,
            age INTEGER,
            active INTEGER NOT NULL DEFAULT 1
        );
        CREATE TABLE RollbackTestUser (id INTEGER PRIMARY KEY, name TEXT NOT NULL);
        CREATE TABLE products (sku TEXT PRIMARY KEY, title TEXT, price REAL);
        INSERT INTO users (id, name, email, age, active) VALUES
            (1, 'Alice', 'alice@example.com', 31, 1),
            (2, 'Bob', NULL, 27, 0),
            (3, 'Carol', 'carol@example.com', NULL, 1),
            (4, 'Dave', 'dave@example.com', 45, 1),
            (5, 'Eve', 'eve@example.com', 38, 0);
        """
    )
    connection.commit()
    connection.close()
    return path


@pytest.fixture
def sqlite_dialect(database_path: Path) -> SQLiteDialect:
    return SQLiteDialect(str(database_path))


@pytest.fixture
def recorded_events() -> list[StatementEvent]:
    return []


@pytest.fixture
def context(sqlite_dialect: SQLiteDialect, recorded_events: list[StatementEvent]) -> Generator[DataContext, None, None]:
    observability = ObservabilityConfig(statement_observers=(recorded_events.append,))
    yield DataContext(sqlite_dialect, observability=observability)


def count_rows(path: Path, table: str) -> int:
    connection = sqlite3.connect(path)
    try:
        return int(connection.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0])
    finally:
        connection.close()


@pytest.fixture
def row_counter(database_path: Path) -> Any:
    return lambda table: count_rows(database_path, table)
