"""Parsing of ADO-style and URL connection strings."""

import re
from dataclasses import dataclass, field
from typing import Any, Final, Optional
from urllib.parse import parse_qsl, unquote, urlparse

from dalite.exceptions import ConfigurationError

__all__ = ("ConnectionSettings", "is_url", "parse_connection_string")

_KEY_ALIASES: Final[dict[str, str]] = {
    "server": "host",
    "host": "host",
    "hostname": "host",
    "data source": "host",
    "datasource": "host",
    "address": "host",
    "addr": "host",
    "network address": "host",
    "port": "port",
    "database": "database",
    "initial catalog": "database",
    "dbname": "database",
    "db": "database",
    "user id": "user",
    "userid": "user",
    "uid": "user",
    "user": "user",
    "username": "user",
    "user name": "user",
    "password": "password",
    "pwd": "password",
}

_PAIR_REGEX: Final = re.compile(
    r"""\s*(?P<key>[^=;]+?)\s*=\s*(?P<value>"(?:[^"]|"")*"|'(?:[^']|'')*'|[^;]*?)\s*(?:;|$)"""
)


@dataclass
class ConnectionSettings:
    """Driver-neutral connection parameters."""

    host: Optional[str] = None
    port: Optional[int] = None
    database: Optional[str] = None
    user: Optional[str] = None
    password: Optional[str] = None
    options: "dict[str, str]" = field(default_factory=dict)

    def as_kwargs(self, **renames: str) -> "dict[str, Any]":
        """Return the non-empty settings as keyword arguments, renaming keys as requested."""
        values = {
            "host": self.host,
            "port": self.port,
            "database": self.database,
            "user": self.user,
            "password": self.password,
        }
        return {renames.get(key, key): value for key, value in values.items() if value is not None}


def is_url(connection_string: str) -> bool:
    return "://" in connection_string


def _unquote_value(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:  # noqa: PLR2004
        quote = value[0]
        return value[1:-1].replace(quote * 2, quote)
    return value


def _parse_port(raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        msg = f"Invalid port {raw!r} in connection string"
        raise ConfigurationError(msg) from None


def _parse_ado(connection_string: str) -> ConnectionSettings:
    settings = ConnectionSettings()
    for match in _PAIR_REGEX.finditer(connection_string):
        key = " ".join(match.group("key").lower().split())
        value = _unquote_value(match.group("value"))
        canonical = _KEY_ALIASES.get(key)
        if canonical is None:
            settings.options[key] = value
        elif canonical == "port":
            settings.port = _parse_port(value)
        else:
            setattr(settings, canonical, value)
    # SQL Server style "host,port"
    if settings.host and "," in settings.host and settings.port is None:
        host, _, port = settings.host.partition(",")
        settings.host, settings.port = host.strip(), _parse_port(port.strip())
    return settings


def _parse_url(connection_string: str) -> ConnectionSettings:
    parsed = urlparse(connection_string)
    database = unquote(parsed.path.lstrip("/")) or None
    try:
        port = parsed.port
    except ValueError:
        msg = "Invalid port in connection URL"
        raise ConfigurationError(msg) from None
    return ConnectionSettings(
        host=parsed.hostname,
        port=port,
        database=database,
        user=unquote(parsed.username) if parsed.username else None,
        password=unquote(parsed.password) if parsed.password else None,
        options={key.lower(): value for key, value in parse_qsl(parsed.query)},
    )


def parse_connection_string(connection_string: str) -> ConnectionSettings:
    """Parse an ADO ``Key=Value;`` string or a URL into :class:`ConnectionSettings`.

    Raises:
        ConfigurationError: If the string is blank or holds an invalid port.
    """
    if not connection_string or not connection_string.strip():
        msg = "Connection string must not be empty"
        raise ConfigurationError(msg)
    text = connection_string.strip()
    if is_url(text):
        return _parse_url(text)
    return _parse_ado(text)
