"""
Registry of installed user plugins.

Hey future me – die Registry lebt im MusicService (kein globaler Singleton mehr)!
Sie wird nur vom Install-Vorgang verändert (seriell, vom User ausgelöst), nie von
laufenden Search-Tasks. Die lesen einen Snapshot via all().

Verwendung:
    registry = PluginRegistry()
    registry.register(load_plugin(source))

    handle = registry.get("kugou")
    for handle in registry.all():
        ...
"""

import logging

from unistream.domain.exceptions import PlaybackUnsupportedError
from unistream.infrastructure.plugins.loader import PluginHandle

logger = logging.getLogger(__name__)


class PluginRegistry:
    """In-memory plugin registry, last install wins per id."""

    def __init__(self) -> None:
        """Initialize empty registry."""
        self._plugins: dict[str, PluginHandle] = {}

    def register(self, plugin: PluginHandle) -> bool:
        """
        Register a plugin.

        Hey future me – überschreibt existierendes Plugin mit gleicher ID!
        Neue Version installieren = einfach nochmal installieren.

        Args:
            plugin: Loaded plugin handle

        Returns:
            True if an older plugin with the same id was replaced
        """
        replaced = plugin.id in self._plugins
        self._plugins[plugin.id] = plugin
        logger.info(
            f"Plugin {'updated' if replaced else 'installed'}: {plugin.id} v{plugin.version}"
        )
        return replaced

    def get(self, plugin_id: str) -> PluginHandle | None:
        return self._plugins.get(plugin_id)

    def require(self, plugin_id: str) -> PluginHandle:
        """
        Get a plugin, raising if not installed.

        Raises:
            PlaybackUnsupportedError: No plugin with that id (its songs cannot play)
        """
        plugin = self._plugins.get(plugin_id)
        if plugin is None:
            raise PlaybackUnsupportedError("PLUGIN", plugin_id, "plugin not installed")
        return plugin

    def unregister(self, plugin_id: str) -> bool:
        return self._plugins.pop(plugin_id, None) is not None

    def all(self) -> list[PluginHandle]:
        """Snapshot of all installed plugins in install order."""
        return list(self._plugins.values())

    def is_registered(self, plugin_id: str) -> bool:
        return plugin_id in self._plugins

    def __len__(self) -> int:
        return len(self._plugins)


__all__ = ["PluginRegistry"]
