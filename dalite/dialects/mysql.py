"""MySQL dialect: ``pymysql`` for blocking access, ``asyncmy`` for async."""

from importlib.util import find_spec
from typing import Any, ClassVar, Optional

from dalite.dialects.base import Dialect
from dalite.exceptions import MissingDependencyError

__all__ = ("MySQLDialect",)

DEFAULT_PORT = 3306


def _import_pymysql() -> Any:
    try:
        import pymysql
    except ImportError as exc:
        raise MissingDependencyError("pymysql", "mysql") from exc
    return pymysql


def _import_asyncmy() -> Any:
    try:
        import asyncmy
    except ImportError as exc:
        raise MissingDependencyError("asyncmy", "mysql") from exc
    return asyncmy


class MySQLDialect(Dialect):
    """MySQL and MariaDB.

    ``@name`` tokens that are not bound parameters are left in place, so user
    variables such as ``@rownum`` keep working.
    """

    name: ClassVar[str] = "mysql"
    sqlglot_dialect: ClassVar[Optional[str]] = "mysql"
    identifier_quotes: ClassVar["tuple[str, str]"] = ("`", "`")
    type_coercion_map = {**Dialect.type_coercion_map, bool: int}

    __slots__ = ()

    @property
    def driver_errors(self) -> "tuple[type[BaseException], ...]":
        errors: list[type[BaseException]] = []
        if find_spec("pymysql") is not None:
            errors.append(_import_pymysql().Error)
        if find_spec("asyncmy") is not None:
            import asyncmy.errors

            errors.append(asyncmy.errors.Error)
        if not errors:
            raise MissingDependencyError("pymysql", "mysql")
        return tuple(errors)

    def paging_clause(self, offset: int, size: int) -> str:
        return f"LIMIT {size} OFFSET {offset}"

    def connect_kwargs(self, timeout: Optional[float] = None) -> "dict[str, Any]":
        """Keyword arguments shared by ``pymysql.connect`` and ``asyncmy.connect``."""
        settings = self.settings
        kwargs = settings.as_kwargs()
        kwargs.setdefault("port", DEFAULT_PORT)
        for key, value in settings.options.items():
            if key in {"charset", "character set"}:
                kwargs["charset"] = value
            elif key in {"connect timeout", "connection timeout", "connect_timeout"}:
                kwargs["connect_timeout"] = int(float(value))
        kwargs.setdefault("charset", "utf8mb4")
        if timeout is not None and timeout > 0:
            kwargs["read_timeout"] = int(timeout)
            kwargs["write_timeout"] = int(timeout)
        return kwargs

    def connect(self, *, timeout: Optional[float] = None) -> Any:
        return _import_pymysql().connect(**self.connect_kwargs(timeout))

    async def connect_async(self, *, timeout: Optional[float] = None) -> Any:
        asyncmy = _import_asyncmy()
        kwargs = self.connect_kwargs()
        return await asyncmy.connect(**kwargs)
