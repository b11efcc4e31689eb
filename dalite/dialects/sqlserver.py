"""SQL Server dialect backed by ``pymssql``."""

from typing import Any, ClassVar, Optional

from dalite.dialects.base import Dialect
from dalite.exceptions import MissingDependencyError

__all__ = ("SQLServerDialect",)


def _import_pymssql() -> Any:
    try:
        import pymssql
    except ImportError as exc:
        raise MissingDependencyError("pymssql", "sqlserver") from exc
    return pymssql


class SQLServerDialect(Dialect):
    """Microsoft SQL Server.

    pymssql has no async API; async calls run the blocking driver in an anyio
    worker thread. ``@@`` system variables such as ``@@ROWCOUNT`` are never
    treated as placeholders. Paged queries need an ``ORDER BY`` clause.
    """

    name: ClassVar[str] = "sqlserver"
    sqlglot_dialect: ClassVar[Optional[str]] = "tsql"
    identifier_quotes: ClassVar["tuple[str, str]"] = ("[", "]")
    bracket_identifiers: ClassVar[bool] = True
    type_coercion_map = {**Dialect.type_coercion_map, bool: int}

    __slots__ = ()

    @property
    def driver_errors(self) -> "tuple[type[BaseException], ...]":
        return (_import_pymssql().Error,)

    def paging_clause(self, offset: int, size: int) -> str:
        return f"OFFSET {offset} ROWS FETCH NEXT {size} ROWS ONLY"

    def connect_kwargs(self, timeout: Optional[float] = None) -> "dict[str, Any]":
        """Keyword arguments for ``pymssql.connect``."""
        settings = self.settings
        kwargs = settings.as_kwargs(host="server")
        if "port" in kwargs:
            kwargs["port"] = str(kwargs["port"])
        for key, value in settings.options.items():
            if key in {"connect timeout", "connection timeout", "login timeout"}:
                kwargs["login_timeout"] = int(float(value))
            elif key in {"application name", "app"}:
                kwargs["appname"] = value
            elif key == "charset":
                kwargs["charset"] = value
        if timeout is not None and timeout > 0:
            kwargs["timeout"] = int(timeout)
        return kwargs

    def connect(self, *, timeout: Optional[float] = None) -> Any:
        return _import_pymssql().connect(**self.connect_kwargs(timeout))
