"""Builds a :class:`DataContext` for a named connection."""

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Optional, Union

from dalite.config import DatabaseProvider, DatabaseSettings, normalize_provider
from dalite.context import DataContext
from dalite.dialects import get_dialect
from dalite.exceptions import ConfigurationError
from dalite.utils.logging import get_logger

if TYPE_CHECKING:
    from dalite.observability import ObservabilityConfig
    from dalite.serialization import JsonServices

__all__ = ("DataContextFactory", "create_context")

logger = get_logger("factory")


def create_context(
    provider: "Union[DatabaseProvider, str]",
    connection_string: str,
    json_services: "Optional[JsonServices]" = None,
    observability: "Optional[ObservabilityConfig]" = None,
) -> DataContext:
    """Build a context for a provider tag and connection string without a settings table.

    Raises:
        UnsupportedProviderError: If no dialect is registered for ``provider``.
    """
    dialect_cls = get_dialect(normalize_provider(provider))
    return DataContext(dialect_cls(connection_string), json_services, observability)


class DataContextFactory:
    """Creates a fresh :class:`DataContext` per call from a connection table.

    The factory keeps only the settings and the shared collaborators it was
    given, so :meth:`create` can be called concurrently and repeatedly.

    Args:
        settings: Named connections, or a mapping accepted by :meth:`DatabaseSettings.from_mapping`.
        json_services: JSON conversion capability handed to every context.
        observability: Statement logging configuration handed to every context.
    """

    __slots__ = ("json_services", "observability", "settings")

    def __init__(
        self,
        settings: "Union[DatabaseSettings, Mapping[str, Any]]",
        json_services: "Optional[JsonServices]" = None,
        observability: "Optional[ObservabilityConfig]" = None,
    ) -> None:
        if settings is None:
            msg = "Database settings are required"
            raise ConfigurationError(msg)
        if not isinstance(settings, DatabaseSettings):
            settings = DatabaseSettings.from_mapping(settings)
        self.settings = settings
        self.json_services = json_services
        self.observability = observability

    def create(self, connection_key: str) -> DataContext:
        """Build a context for ``connection_key``.

        Raises:
            ConfigurationError: If ``connection_key`` is not configured.
            UnsupportedProviderError: If the configured provider has no registered dialect.
        """
        config = self.settings.get(connection_key)
        context = create_context(config.provider, config.connection_string, self.json_services, self.observability)
        logger.debug("Created %s context for connection %r", context.provider, connection_key)
        return context
