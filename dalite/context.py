"""The data context: one handle per connection string."""

from collections.abc import Callable, Iterable
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, TypeVar, Union

from dalite.driver import (
    DEFAULT_TRANSACTION_TIMEOUT,
    AsyncQueryExecutor,
    AsyncTransactionExecutor,
    SyncQueryExecutor,
    SyncTransactionExecutor,
)
from dalite.parameters import bind_parameters
from dalite.serialization import JsonServices
from dalite.statement import StatementPattern, add_query

if TYPE_CHECKING:
    from dalite.bulk import BulkSource
    from dalite.core.result import DataSet, Row, TabularResult
    from dalite.dialects.base import Dialect
    from dalite.observability import ObservabilityConfig
    from dalite.typing import StatementParameters

__all__ = ("DataContext",)

T = TypeVar("T")


class DataContext:
    """Query, transaction and JSON operations bound to one connection string.

    Every operation opens its own connection and closes it before returning,
    so one context can serve concurrent callers. Blocking methods carry the
    plain operation name; their coroutine counterparts end in ``_async``.

    Args:
        dialect: Dialect bound to the connection string.
        json_services: JSON conversion capability; a default :class:`JsonServices` when omitted.
        observability: Statement logging and observer configuration.
    """

    __slots__ = (
        "async_query_executor",
        "async_transaction_executor",
        "dialect",
        "json_services",
        "query_executor",
        "transaction_executor",
    )

    def __init__(
        self,
        dialect: "Dialect",
        json_services: "Optional[JsonServices]" = None,
        observability: "Optional[ObservabilityConfig]" = None,
    ) -> None:
        self.dialect = dialect
        self.json_services = json_services if json_services is not None else JsonServices()
        self.query_executor = SyncQueryExecutor(dialect, observability)
        self.async_query_executor = AsyncQueryExecutor(dialect, observability)
        self.transaction_executor = SyncTransactionExecutor(dialect, observability)
        self.async_transaction_executor = AsyncTransactionExecutor(dialect, observability)

    def __repr__(self) -> str:
        return f"DataContext(provider={self.dialect.name!r})"

    @property
    def provider(self) -> str:
        return self.dialect.name

    @staticmethod
    def add_query(query: str, parameters: "Any" = None) -> StatementPattern:
        """Build a :class:`StatementPattern` for :meth:`save_changes`."""
        return add_query(query, parameters)

    @staticmethod
    def add_parameters(values: "Optional[Iterable[Any]]" = None) -> "dict[str, Any]":
        """Name positional values ``param1``, ``param2``, ... in order."""
        return bind_parameters(values)

    # Queries

    def get_data_table(self, query: str, parameters: "StatementParameters" = None) -> "TabularResult":
        return self.query_executor.get_data_table(query, parameters)

    def get_data_set(self, query: str, parameters: "StatementParameters" = None) -> "DataSet":
        return self.query_executor.get_data_set(query, parameters)

    def get_data_row(self, query: str, parameters: "StatementParameters" = None) -> "Optional[Row]":
        return self.query_executor.get_data_row(query, parameters)

    def get_single_record(
        self, query: str, target: "type[T]", parameters: "StatementParameters" = None
    ) -> "Optional[T]":
        return self.query_executor.get_single_record(query, target, parameters)

    def get_record_list(self, query: str, target: "type[T]", parameters: "StatementParameters" = None) -> "list[T]":
        return self.query_executor.get_record_list(query, target, parameters)

    def get_single_value(self, query: str, target: Any = None, parameters: "StatementParameters" = None) -> Any:
        return self.query_executor.get_single_value(query, target, parameters)

    def get_list(self, query: str, target: Any = None, parameters: "StatementParameters" = None) -> "list[Any]":
        return self.query_executor.get_list(query, target, parameters)

    def get_count(self, query: str, parameters: "StatementParameters" = None) -> int:
        return self.query_executor.get_count(query, parameters)

    def exists(self, query: str, parameters: "StatementParameters" = None) -> bool:
        return self.query_executor.exists(query, parameters)

    def get_paged_data_table(
        self,
        query: str,
        parameters: "StatementParameters" = None,
        page_number: int = 1,
        page_size: int = 10,
    ) -> "TabularResult":
        return self.query_executor.get_paged_data_table(query, parameters, page_number, page_size)

    def get_dictionary(
        self,
        query: str,
        key_type: Any = None,
        value_type: Any = None,
        parameters: "StatementParameters" = None,
    ) -> "dict[Any, Any]":
        return self.query_executor.get_dictionary(query, key_type, value_type, parameters)

    def get_mapped_list(
        self, query: str, func: "Optional[Callable[[Row], T]]", parameters: "StatementParameters" = None
    ) -> "list[T]":
        return self.query_executor.get_mapped_list(query, func, parameters)

    async def get_data_table_async(self, query: str, parameters: "StatementParameters" = None) -> "TabularResult":
        return await self.async_query_executor.get_data_table(query, parameters)

    async def get_data_set_async(self, query: str, parameters: "StatementParameters" = None) -> "DataSet":
        return await self.async_query_executor.get_data_set(query, parameters)

    async def get_data_row_async(self, query: str, parameters: "StatementParameters" = None) -> "Optional[Row]":
        return await self.async_query_executor.get_data_row(query, parameters)

    async def get_single_record_async(
        self, query: str, target: "type[T]", parameters: "StatementParameters" = None
    ) -> "Optional[T]":
        return await self.async_query_executor.get_single_record(query, target, parameters)

    async def get_record_list_async(
        self, query: str, target: "type[T]", parameters: "StatementParameters" = None
    ) -> "list[T]":
        return await self.async_query_executor.get_record_list(query, target, parameters)

    async def get_single_value_async(
        self, query: str, target: Any = None, parameters: "StatementParameters" = None
    ) -> Any:
        return await self.async_query_executor.get_single_value(query, target, parameters)

    async def get_list_async(
        self, query: str, target: Any = None, parameters: "StatementParameters" = None
    ) -> "list[Any]":
        return await self.async_query_executor.get_list(query, target, parameters)

    async def get_count_async(self, query: str, parameters: "StatementParameters" = None) -> int:
        return await self.async_query_executor.get_count(query, parameters)

    async def exists_async(self, query: str, parameters: "StatementParameters" = None) -> bool:
        return await self.async_query_executor.exists(query, parameters)

    async def get_paged_data_table_async(
        self,
        query: str,
        parameters: "StatementParameters" = None,
        page_number: int = 1,
        page_size: int = 10,
    ) -> "TabularResult":
        return await self.async_query_executor.get_paged_data_table(query, parameters, page_number, page_size)

    async def get_dictionary_async(
        self,
        query: str,
        key_type: Any = None,
        value_type: Any = None,
        parameters: "StatementParameters" = None,
    ) -> "dict[Any, Any]":
        return await self.async_query_executor.get_dictionary(query, key_type, value_type, parameters)

    async def get_mapped_list_async(
        self, query: str, func: "Optional[Callable[[Row], T]]", parameters: "StatementParameters" = None
    ) -> "list[T]":
        return await self.async_query_executor.get_mapped_list(query, func, parameters)

    # Transactions

    def save_changes(
        self,
        statements: "Optional[Iterable[StatementPattern]]",
        timeout_seconds: Optional[float] = DEFAULT_TRANSACTION_TIMEOUT,
    ) -> bool:
        """Run ``statements`` atomically; see :meth:`SyncTransactionExecutor.save_changes`."""
        return self.transaction_executor.save_changes(statements, timeout_seconds)

    def execute_raw_sql(self, query: str, parameters: "StatementParameters" = None) -> int:
        return self.transaction_executor.execute_raw_sql(query, parameters)

    def bulk_insert(self, table_name: str, source: "Optional[BulkSource]") -> int:
        return self.transaction_executor.bulk_insert(table_name, source)

    def bulk_insert_from_json(self, table_name: str, path: "Union[str, Path]", target: Any = None) -> int:
        return self.transaction_executor.bulk_insert_from_json(table_name, path, target)

    def bulk_insert_from_csv(self, table_name: str, path: "Union[str, Path]") -> int:
        return self.transaction_executor.bulk_insert_from_csv(table_name, path)

    async def save_changes_async(
        self,
        statements: "Optional[Iterable[StatementPattern]]",
        timeout_seconds: Optional[float] = DEFAULT_TRANSACTION_TIMEOUT,
    ) -> bool:
        return await self.async_transaction_executor.save_changes(statements, timeout_seconds)

    async def execute_raw_sql_async(self, query: str, parameters: "StatementParameters" = None) -> int:
        return await self.async_transaction_executor.execute_raw_sql(query, parameters)

    async def bulk_insert_async(self, table_name: str, source: "Optional[BulkSource]") -> int:
        return await self.async_transaction_executor.bulk_insert(table_name, source)

    async def bulk_insert_from_json_async(
        self, table_name: str, path: "Union[str, Path]", target: Any = None
    ) -> int:
        return await self.async_transaction_executor.bulk_insert_from_json(table_name, path, target)

    async def bulk_insert_from_csv_async(self, table_name: str, path: "Union[str, Path]") -> int:
        return await self.async_transaction_executor.bulk_insert_from_csv(table_name, path)
