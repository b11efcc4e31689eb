"""Connection configuration: provider tags and the named connection table."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

import msgspec

from dalite._serialization import decode_json
from dalite.exceptions import ConfigurationError, UnsupportedProviderError
from dalite.utils.logging import get_logger

__all__ = ("DatabaseConfig", "DatabaseProvider", "DatabaseSettings", "normalize_provider")

logger = get_logger("config")

_PROVIDER_ALIASES = {
    "sqlserver": "sqlserver",
    "mssql": "sqlserver",
    "sql server": "sqlserver",
    "postgresql": "postgresql",
    "postgres": "postgresql",
    "pgsql": "postgresql",
    "mysql": "mysql",
}


class DatabaseProvider(str, Enum):
    """Built-in provider tags. Lookup by value accepts aliases in any case, e.g. ``"SqlServer"`` or ``"postgres"``."""

    SQLSERVER = "sqlserver"
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"

    @classmethod
    def _missing_(cls, value: object) -> "Optional[DatabaseProvider]":
        if isinstance(value, str):
            canonical = _PROVIDER_ALIASES.get(value.strip().lower())
            if canonical is not None:
                return cls(canonical)
        return None

    @classmethod
    def parse(cls, value: Any) -> "DatabaseProvider":
        """Parse a provider tag or alias.

        Raises:
            UnsupportedProviderError: If ``value`` names no built-in provider.
        """
        try:
            return cls(value)
        except ValueError:
            raise UnsupportedProviderError(value) from None


def normalize_provider(value: Any) -> str:
    """Return the canonical tag for a built-in provider, or the lower-cased tag of a registered one."""
    if isinstance(value, DatabaseProvider):
        return value.value
    try:
        return DatabaseProvider(value).value
    except ValueError:
        return "" if value is None else str(value).strip().lower()


@dataclass(slots=True)
class DatabaseConfig:
    """Provider and connection string of one named connection."""

    provider: "Union[DatabaseProvider, str]"
    connection_string: str

    def __post_init__(self) -> None:
        if not isinstance(self.connection_string, str) or not self.connection_string.strip():
            msg = "A connection string is required"
            raise ConfigurationError(msg)
        tag = normalize_provider(self.provider)
        if not tag:
            msg = "A provider is required"
            raise ConfigurationError(msg)
        self.provider = DatabaseProvider(tag) if tag in _PROVIDER_ALIASES.values() else tag

    @property
    def provider_tag(self) -> str:
        return normalize_provider(self.provider)


def _pick(entry: "Mapping[str, Any]", *keys: str) -> Any:
    lowered = {str(key).lower(): value for key, value in entry.items()}
    for key in keys:
        if key in lowered:
            return lowered[key]
    return None


@dataclass(slots=True)
class DatabaseSettings:
    """Table of logical connection names to :class:`DatabaseConfig`.

    Consumed once when a factory is built; there is no live reload.
    """

    connections: "dict[str, DatabaseConfig]" = field(default_factory=dict)

    def get(self, connection_key: str) -> DatabaseConfig:
        """Look up one named connection.

        Raises:
            ConfigurationError: If ``connection_key`` is not configured.
        """
        try:
            return self.connections[connection_key]
        except (KeyError, TypeError):
            msg = f"Connection key {connection_key!r} not found in configuration."
            raise ConfigurationError(msg) from None

    def add(self, connection_key: str, provider: "Union[DatabaseProvider, str]", connection_string: str) -> None:
        self.connections[connection_key] = DatabaseConfig(provider, connection_string)

    @classmethod
    def from_mapping(cls, data: "Mapping[str, Any]") -> "DatabaseSettings":
        """Build settings from a plain mapping.

        Accepts ``{"Connections": {name: {"Provider": ..., "ConnectionString": ...}}}``;
        key matching is case-insensitive and ``connection_string`` works too.

        Raises:
            ConfigurationError: If the mapping does not have that shape.
        """
        if not isinstance(data, Mapping):
            msg = "Database settings must be a mapping"
            raise ConfigurationError(msg)
        connections = _pick(data, "connections")
        if connections is None:
            connections = {}
        if not isinstance(connections, Mapping):
            msg = "'Connections' must map connection names to provider settings"
            raise ConfigurationError(msg)
        settings = cls()
        for name, entry in connections.items():
            if not isinstance(entry, Mapping):
                msg = f"Connection {name!r} must be a mapping"
                raise ConfigurationError(msg)
            provider = _pick(entry, "provider")
            if provider is None:
                msg = f"Connection {name!r} has no provider"
                raise ConfigurationError(msg)
            connection_string = _pick(entry, "connectionstring", "connection_string")
            try:
                settings.add(str(name), provider, connection_string)
            except ConfigurationError as exc:
                msg = f"Connection {name!r}: {exc.detail}"
                raise ConfigurationError(msg) from exc
        logger.debug("Loaded %d database connections", len(settings.connections))
        return settings

    @classmethod
    def from_json(cls, data: "Union[str, bytes]") -> "DatabaseSettings":
        """Build settings from a JSON document shaped like :meth:`from_mapping` expects."""
        try:
            document = decode_json(data)
        except msgspec.DecodeError as exc:
            msg = f"Invalid database settings JSON: {exc}"
            raise ConfigurationError(msg) from exc
        return cls.from_mapping(document)

    @classmethod
    def from_file(cls, path: "Union[str, Path]") -> "DatabaseSettings":
        """Read settings from a JSON file such as ``appsettings.json``."""
        return cls.from_json(Path(path).read_bytes())
