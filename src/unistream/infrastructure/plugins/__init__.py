"""User plugin loading and registry."""

from unistream.infrastructure.plugins.loader import PluginHandle, load_plugin
from unistream.infrastructure.plugins.registry import PluginRegistry

__all__ = ["PluginHandle", "PluginRegistry", "load_plugin"]
