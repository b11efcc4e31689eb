"""Dialect registry keyed by provider tag."""

from typing import Any

from dalite.dialects.base import DEFAULT_PAGE_NUMBER, DEFAULT_PAGE_SIZE, Dialect, normalize_paging
from dalite.dialects.mysql import MySQLDialect
from dalite.dialects.postgresql import PostgreSQLDialect
from dalite.dialects.sqlserver import SQLServerDialect
from dalite.exceptions import InvalidArgumentError, UnsupportedProviderError

__all__ = (
    "DEFAULT_PAGE_NUMBER",
    "DEFAULT_PAGE_SIZE",
    "Dialect",
    "MySQLDialect",
    "PostgreSQLDialect",
    "SQLServerDialect",
    "get_dialect",
    "normalize_paging",
    "register_dialect",
    "registered_providers",
)

_DIALECTS: "dict[str, type[Dialect]]" = {}


def _tag(provider: Any) -> str:
    return str(getattr(provider, "value", provider)).strip().lower()


def register_dialect(provider: Any, dialect_cls: "type[Dialect]") -> None:
    """Register ``dialect_cls`` for a provider tag, replacing any earlier registration.

    Raises:
        InvalidArgumentError: If ``dialect_cls`` is not a :class:`Dialect` subclass or the tag is blank.
    """
    if not isinstance(dialect_cls, type) or not issubclass(dialect_cls, Dialect):
        msg = f"{dialect_cls!r} is not a Dialect subclass"
        raise InvalidArgumentError(msg)
    tag = _tag(provider)
    if not tag:
        msg = "Provider tag must not be empty"
        raise InvalidArgumentError(msg)
    _DIALECTS[tag] = dialect_cls


def get_dialect(provider: Any) -> "type[Dialect]":
    """Look up the dialect class registered for ``provider``.

    Raises:
        UnsupportedProviderError: If no dialect is registered under the tag.
    """
    try:
        return _DIALECTS[_tag(provider)]
    except KeyError:
        raise UnsupportedProviderError(provider) from None


def registered_providers() -> "tuple[str, ...]":
    return tuple(sorted(_DIALECTS))


for _dialect in (SQLServerDialect, PostgreSQLDialect, MySQLDialect):
    register_dialect(_dialect.name, _dialect)
