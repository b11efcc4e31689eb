"""dalite: one data-access API for SQL Server, PostgreSQL and MySQL."""

from dalite import core, dialects, driver, exceptions, observability, parameters, typing, utils
from dalite.__metadata__ import __version__
from dalite.config import DatabaseConfig, DatabaseProvider, DatabaseSettings
from dalite.context import DataContext
from dalite.core.result import Column, DataSet, Row, TabularResult
from dalite.dialects import Dialect, get_dialect, register_dialect
from dalite.exceptions import (
    BulkLoadError,
    ConfigurationError,
    DaliteError,
    ExecutionError,
    InvalidArgumentError,
    MissingDependencyError,
    SerializationError,
    TransactionError,
    TypeCoercionError,
    UnsupportedProviderError,
)
from dalite.factory import DataContextFactory, create_context
from dalite.observability import ObservabilityConfig, StatementEvent
from dalite.parameters import ParameterDirection, TypedParameter, bind_parameters
from dalite.serialization import JsonServices
from dalite.statement import StatementPattern, add_query

__all__ = (
    "BulkLoadError",
    "Column",
    "ConfigurationError",
    "DaliteError",
    "DataContext",
    "DataContextFactory",
    "DataSet",
    "DatabaseConfig",
    "DatabaseProvider",
    "DatabaseSettings",
    "Dialect",
    "ExecutionError",
    "InvalidArgumentError",
    "JsonServices",
    "MissingDependencyError",
    "ObservabilityConfig",
    "ParameterDirection",
    "Row",
    "SerializationError",
    "StatementEvent",
    "StatementPattern",
    "TabularResult",
    "TransactionError",
    "TypeCoercionError",
    "TypedParameter",
    "UnsupportedProviderError",
    "__version__",
    "add_query",
    "bind_parameters",
    "core",
    "create_context",
    "dialects",
    "driver",
    "exceptions",
    "get_dialect",
    "observability",
    "parameters",
    "register_dialect",
    "typing",
    "utils",
)
