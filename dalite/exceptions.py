"""Exceptions raised by dalite and the context manager that translates driver errors."""

from collections.abc import Generator
from contextlib import contextmanager
from typing import Any, Optional

__all__ = (
    "BulkLoadError",
    "ConfigurationError",
    "DaliteError",
    "ExecutionError",
    "InvalidArgumentError",
    "MissingDependencyError",
    "SerializationError",
    "TransactionError",
    "TypeCoercionError",
    "UnsupportedProviderError",
    "wrap_driver_errors",
)


class DaliteError(Exception):
    """Base exception class from which all dalite exceptions inherit."""

    detail: str

    def __init__(self, *args: Any, detail: str = "") -> None:
        """Initialize ``DaliteError``.

        Args:
            *args: args are converted to :class:`str` before passing to :class:`Exception`
            detail: detail of the exception.
        """
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        super().__init__(*str_args)

    def __repr__(self) -> str:
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return " ".join((*self.args, self.detail)).strip()


class MissingDependencyError(DaliteError, ImportError):
    """Missing optional dependency.

    This exception is raised only when a dialect needs a driver package that has not been installed.
    """

    def __init__(self, package: str, install_package: Optional[str] = None) -> None:
        super().__init__(
            f"Package {package!r} is not installed but required. You can install it by running "
            f"'pip install dalite[{install_package or package}]' to install dalite with the required extra "
            f"or 'pip install {package}' to install the package separately",
        )


class ConfigurationError(DaliteError):
    """A logical connection name is unknown or its configuration is invalid."""


class UnsupportedProviderError(ConfigurationError):
    """The configured provider tag does not match any registered dialect."""

    provider: str

    def __init__(self, provider: Any) -> None:
        self.provider = str(provider)
        super().__init__(detail=f"Database provider {self.provider!r} is not supported.")


class InvalidArgumentError(DaliteError, ValueError):
    """A required argument is missing or malformed.

    Always raised before any database I/O takes place.
    """


class ExecutionError(DaliteError):
    """The database driver rejected or failed a statement."""

    sql: Optional[str]

    def __init__(self, message: str, sql: Optional[str] = None) -> None:
        super().__init__(detail=message)
        self.sql = sql


class TypeCoercionError(DaliteError, TypeError):
    """A cell value could not be converted to the declared type of its target slot."""

    column: str
    target_type: Any

    def __init__(self, column: str, target_type: Any, value: Any = None) -> None:
        type_name = getattr(target_type, "__name__", repr(target_type))
        message = f"Cannot convert value of type {type(value).__name__} in column {column!r} to {type_name}"
        super().__init__(detail=message)
        self.column = column
        self.target_type = target_type


class TransactionError(DaliteError):
    """A statement inside a transactional batch failed and the batch was rolled back."""

    statement_index: Optional[int]
    rollback_error: Optional[BaseException]

    def __init__(
        self,
        message: str,
        statement_index: Optional[int] = None,
        rollback_error: Optional[BaseException] = None,
    ) -> None:
        super().__init__(detail=message)
        self.statement_index = statement_index
        self.rollback_error = rollback_error


class BulkLoadError(DaliteError):
    """Rows could not be copied into the destination table."""

    table_name: str

    def __init__(self, message: str, table_name: str) -> None:
        super().__init__(detail=message)
        self.table_name = table_name


class SerializationError(DaliteError):
    """Encoding or decoding of an object failed."""


@contextmanager
def wrap_driver_errors(
    driver_errors: "tuple[type[BaseException], ...]", sql: Optional[str] = None
) -> Generator[None, None, None]:
    """Re-raise driver exceptions as :class:`ExecutionError`.

    Args:
        driver_errors: Exception types raised by the underlying DB-API driver.
        sql: Statement text attached to the raised error.

    Raises:
        ExecutionError: When the wrapped block raises one of ``driver_errors``.
    """
    try:
        yield
    except driver_errors as exc:
        msg = f"{type(exc).__name__}: {exc}"
        raise ExecutionError(msg, sql=sql) from exc
