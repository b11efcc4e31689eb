from dalite.driver._async import AsyncCursor, AsyncQueryExecutor, AsyncTransactionExecutor
from dalite.driver._common import DEFAULT_TRANSACTION_TIMEOUT, CommonExecutorAttributes, PreparedStatement
from dalite.driver._sync import SyncCursor, SyncQueryExecutor, SyncTransactionExecutor

__all__ = (
    "DEFAULT_TRANSACTION_TIMEOUT",
    "AsyncCursor",
    "AsyncQueryExecutor",
    "AsyncTransactionExecutor",
    "CommonExecutorAttributes",
    "PreparedStatement",
    "SyncCursor",
    "SyncQueryExecutor",
    "SyncTransactionExecutor",
)
