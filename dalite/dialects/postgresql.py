"""PostgreSQL dialect backed by psycopg 3."""

from typing import Any, ClassVar, Optional

from dalite._serialization import encode_json
from dalite.dialects.base import Dialect
from dalite.exceptions import MissingDependencyError
from dalite.parameters import TypedParameter
from dalite.utils.connection_string import is_url

__all__ = ("PostgreSQLDialect",)

_JSON_TYPES = frozenset({"json", "jsonb"})


def _import_psycopg() -> Any:
    try:
        import psycopg
    except ImportError as exc:
        raise MissingDependencyError("psycopg", "postgresql") from exc
    return psycopg


class PostgreSQLDialect(Dialect):
    """PostgreSQL through ``psycopg``; native async via ``psycopg.AsyncConnection``.

    The connection string may be a ``postgresql://`` URL or a libpq conninfo
    string, both passed to psycopg verbatim, or an ADO-style
    ``Host=...;Database=...;`` string that is translated to keyword arguments.
    """

    name: ClassVar[str] = "postgresql"
    sqlglot_dialect: ClassVar[Optional[str]] = "postgres"
    identifier_quotes: ClassVar["tuple[str, str]"] = ('"', '"')
    type_coercion_map = {dict: encode_json}

    __slots__ = ()

    @property
    def driver_errors(self) -> "tuple[type[BaseException], ...]":
        return (_import_psycopg().Error,)

    def paging_clause(self, offset: int, size: int) -> str:
        return f"LIMIT {size} OFFSET {offset}"

    def render_typed(self, parameter: TypedParameter) -> Any:
        db_type = (parameter.db_type or "").lower()
        if parameter.value is not None and db_type in _JSON_TYPES:
            from psycopg.types.json import Json, Jsonb

            return Jsonb(parameter.value) if db_type == "jsonb" else Json(parameter.value)
        return parameter.value

    def connect_arguments(self, timeout: Optional[float] = None) -> "tuple[str, dict[str, Any]]":
        """Translate the connection string into ``(conninfo, kwargs)`` for ``psycopg.connect``."""
        text = self.connection_string.strip()
        kwargs: dict[str, Any] = {}
        if is_url(text) or ";" not in text:
            conninfo = text
        else:
            conninfo = ""
            settings = self.settings
            kwargs.update(settings.as_kwargs(database="dbname"))
            for key, value in settings.options.items():
                if key in {"timeout", "connect timeout", "connect_timeout"}:
                    kwargs["connect_timeout"] = int(float(value))
                elif key in {"application name", "application_name"}:
                    kwargs["application_name"] = value
                elif key in {"ssl mode", "sslmode"}:
                    kwargs["sslmode"] = value.lower()
        if timeout is not None and timeout > 0:
            kwargs["options"] = f"-c statement_timeout={int(timeout * 1000)}"
        return conninfo, kwargs

    def connect(self, *, timeout: Optional[float] = None) -> Any:
        psycopg = _import_psycopg()
        conninfo, kwargs = self.connect_arguments(timeout)
        return psycopg.connect(conninfo, **kwargs)

    async def connect_async(self, *, timeout: Optional[float] = None) -> Any:
        psycopg = _import_psycopg()
        conninfo, kwargs = self.connect_arguments(timeout)
        return await psycopg.AsyncConnection.connect(conninfo, **kwargs)
