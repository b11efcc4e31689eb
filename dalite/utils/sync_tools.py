"""Helpers bridging blocking DB-API objects into async code."""

import inspect
from functools import partial
from typing import Any, Callable, TypeVar

import anyio.to_thread

__all__ = ("ThreadedConnection", "ThreadedCursor", "maybe_await", "run_sync")

ReturnT = TypeVar("ReturnT")


async def maybe_await(value: Any) -> Any:
    """Await awaitables and return non-awaitable values unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value


async def run_sync(func: "Callable[..., ReturnT]", *args: Any, **kwargs: Any) -> ReturnT:
    """Run a blocking callable in an anyio worker thread."""
    return await anyio.to_thread.run_sync(partial(func, *args, **kwargs))


class ThreadedCursor:
    """Async facade over a blocking DB-API cursor."""

    __slots__ = ("_cursor",)

    def __init__(self, cursor: Any) -> None:
        self._cursor = cursor

    @property
    def description(self) -> Any:
        return self._cursor.description

    @property
    def rowcount(self) -> int:
        return int(self._cursor.rowcount)

    async def execute(self, sql: str, parameters: Any = None) -> Any:
        if parameters is None:
            return await run_sync(self._cursor.execute, sql)
        return await run_sync(self._cursor.execute, sql, parameters)

    async def executemany(self, sql: str, seq_of_parameters: Any) -> Any:
        return await run_sync(self._cursor.executemany, sql, seq_of_parameters)

    async def fetchone(self) -> Any:
        return await run_sync(self._cursor.fetchone)

    async def fetchall(self) -> Any:
        return await run_sync(self._cursor.fetchall)

    async def close(self) -> None:
        await run_sync(self._cursor.close)


class ThreadedConnection:
    """Async facade over a blocking DB-API connection.

    Each call is offloaded to a worker thread so the event loop never blocks on
    drivers that ship no native async API.
    """

    __slots__ = ("_connection",)

    def __init__(self, connection: Any) -> None:
        self._connection = connection

    @classmethod
    async def open(cls, connect: "Callable[[], Any]") -> "ThreadedConnection":
        return cls(await run_sync(connect))

    @property
    def raw(self) -> Any:
        return self._connection

    async def cursor(self) -> ThreadedCursor:
        return ThreadedCursor(await run_sync(self._connection.cursor))

    async def commit(self) -> None:
        await run_sync(self._connection.commit)

    async def rollback(self) -> None:
        await run_sync(self._connection.rollback)

    async def close(self) -> None:
        await run_sync(self._connection.close)
