"""Search provider registry.

Holds the built-in adapters of one service context. Plugin adapters are not
stored here: they are derived from the PluginRegistry for every search, so an
install takes effect on the next query without touching this registry.
"""

import logging

from unistream.domain.ports.provider import IProviderAdapter
from unistream.infrastructure.plugins.registry import PluginRegistry
from unistream.infrastructure.providers.plugin_provider import PluginProvider

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Registry of search provider adapters, keyed by provider name."""

    def __init__(self) -> None:
        """Initialize empty registry."""
        self._providers: dict[str, IProviderAdapter] = {}

    def register(self, provider: IProviderAdapter) -> None:
        """Register a provider adapter (same name replaces).

        Args:
            provider: Adapter implementation to register
        """
        self._providers[provider.name] = provider
        logger.info(f"Registered search provider: {provider.name}")

    def unregister(self, name: str) -> None:
        if name in self._providers:
            self._providers.pop(name)
            logger.info(f"Unregistered search provider: {name}")

    def get(self, name: str) -> IProviderAdapter | None:
        return self._providers.get(name)

    def builtin(self) -> list[IProviderAdapter]:
        return list(self._providers.values())

    def active(self, plugins: PluginRegistry | None = None) -> list[IProviderAdapter]:
        """Built-in adapters followed by one adapter per searchable plugin."""
        providers = self.builtin()
        if plugins is not None:
            providers.extend(PluginProvider(handle) for handle in plugins.all() if handle.can_search)
        return providers
