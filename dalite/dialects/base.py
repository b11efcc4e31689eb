"""Dialect base class: everything that differs between database backends.

A dialect instance is bound to one connection string. It knows how to open
sync and async DB-API connections, which placeholder style the driver
expects, how plain and typed parameter values are rendered for the driver,
how a query is paged, how identifiers are quoted and which exceptions the
driver raises.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping, Sequence
from typing import Any, ClassVar, Optional

from dalite._serialization import encode_json
from dalite.parameters import ParameterStyle, TypedParameter, prepare_parameter_batch, prepare_parameters
from dalite.utils.connection_string import ConnectionSettings, parse_connection_string
from dalite.utils.sync_tools import ThreadedConnection

__all__ = ("DEFAULT_PAGE_NUMBER", "DEFAULT_PAGE_SIZE", "Dialect", "normalize_paging")

DEFAULT_PAGE_NUMBER = 1
DEFAULT_PAGE_SIZE = 10


def normalize_paging(page_number: Any, page_size: Any) -> "tuple[int, int]":
    """Clamp invalid paging input to page 1 and page size 10.

    Returns:
        ``(page_number, page_size)``, each at least 1.
    """
    if not isinstance(page_number, int) or isinstance(page_number, bool) or page_number < 1:
        page_number = DEFAULT_PAGE_NUMBER
    if not isinstance(page_size, int) or isinstance(page_size, bool) or page_size < 1:
        page_size = DEFAULT_PAGE_SIZE
    return page_number, page_size


class Dialect(ABC):
    """Per-backend behaviour behind a uniform executor API.

    Args:
        connection_string: ADO-style ``Key=Value;`` string or connection URL.
    """

    name: ClassVar[str]
    """Provider tag, e.g. ``"postgresql"``."""

    sqlglot_dialect: ClassVar[Optional[str]] = None
    """Dialect name used when tokenizing multi-statement scripts."""

    parameter_style: ClassVar[ParameterStyle] = ParameterStyle.NAMED_PYFORMAT

    identifier_quotes: ClassVar["tuple[str, str]"] = ('"', '"')

    bracket_identifiers: ClassVar[bool] = False
    """Whether ``[...]`` quotes an identifier rather than an array constructor or subscript."""

    type_coercion_map: ClassVar["dict[type, Callable[[Any], Any]]"] = {
        dict: encode_json,
        list: encode_json,
        tuple: lambda value: encode_json(list(value)),
    }
    """Conversions applied to plain parameter values before binding; exact type matches win."""

    __slots__ = ("_settings", "connection_string")

    def __init__(self, connection_string: str) -> None:
        self.connection_string = connection_string
        self._settings: Optional[ConnectionSettings] = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"

    @property
    def settings(self) -> ConnectionSettings:
        """The parsed connection string."""
        if self._settings is None:
            self._settings = parse_connection_string(self.connection_string)
        return self._settings

    @property
    @abstractmethod
    def driver_errors(self) -> "tuple[type[BaseException], ...]":
        """Exception types raised by the backend driver."""

    @abstractmethod
    def paging_clause(self, offset: int, size: int) -> str:
        """Clause appended to a query to select one page."""

    def apply_paging(self, query: str, page_number: Any, page_size: Any) -> str:
        """Append the paging clause for a 1-based page to ``query``.

        The clause starts on a new line, after any trailing line comment.
        Invalid page input is clamped to page 1 of size 10. The query must
        already carry a deterministic ``ORDER BY``; some backends require one.
        """
        page_number, page_size = normalize_paging(page_number, page_size)
        offset = (page_number - 1) * page_size
        return f"{query.rstrip().rstrip(';').rstrip()}\n{self.paging_clause(offset, page_size)}"

    def coerce_plain(self, value: Any) -> Any:
        """Convert a plain parameter value through :attr:`type_coercion_map`."""
        if value is None:
            return None
        converter = self.type_coercion_map.get(type(value))
        if converter is None:
            for value_type, candidate in self.type_coercion_map.items():
                if isinstance(value, value_type):
                    converter = candidate
                    break
        return converter(value) if converter is not None else value

    def render_typed(self, parameter: TypedParameter) -> Any:
        """Render a typed parameter; the value is passed through intact unless a backend overrides this."""
        return parameter.value

    def render_parameter(self, name: str, value: Any) -> Any:
        """Convert one bound value into what the driver receives."""
        if isinstance(value, TypedParameter):
            return self.render_typed(value)
        return self.coerce_plain(value)

    def prepare(self, sql: str, parameters: Any) -> "tuple[str, Any]":
        """Rewrite ``@name`` placeholders and render parameters for this driver."""
        return prepare_parameters(
            sql, parameters, self.parameter_style, self.render_parameter, bracket_identifiers=self.bracket_identifiers
        )

    def prepare_many(self, sql: str, parameter_sets: "Sequence[Mapping[str, Any]]") -> "tuple[str, list[Any]]":
        """Rewrite placeholders once and render every parameter set for ``executemany``."""
        return prepare_parameter_batch(
            sql,
            parameter_sets,
            self.parameter_style,
            self.render_parameter,
            bracket_identifiers=self.bracket_identifiers,
        )

    def quote_identifier(self, identifier: str) -> str:
        """Quote a possibly schema-qualified identifier, e.g. ``dbo.Users``."""
        opening, closing = self.identifier_quotes
        parts = []
        for part in identifier.split("."):
            stripped = part.strip()
            if stripped.startswith(opening) and stripped.endswith(closing) and len(stripped) > 1:
                parts.append(stripped)
                continue
            parts.append(f"{opening}{stripped.replace(closing, closing * 2)}{closing}")
        return ".".join(parts)

    @abstractmethod
    def connect(self, *, timeout: Optional[float] = None) -> Any:
        """Open a blocking DB-API connection.

        Args:
            timeout: Statement timeout in seconds, where the driver supports one.
        """

    async def connect_async(self, *, timeout: Optional[float] = None) -> Any:
        """Open an async connection.

        Backends without a native async driver run the blocking driver in a
        worker thread.
        """
        return await ThreadedConnection.open(lambda: self.connect(timeout=timeout))

