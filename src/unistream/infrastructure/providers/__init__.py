"""Provider adapters: one per music source, all returning Song DTOs."""

from unistream.infrastructure.providers.bilibili_provider import BilibiliProvider
from unistream.infrastructure.providers.netease_provider import NeteaseProvider
from unistream.infrastructure.providers.plugin_provider import PluginProvider
from unistream.infrastructure.providers.registry import ProviderRegistry
from unistream.infrastructure.providers.youtube_provider import YouTubeProvider

__all__ = [
    "BilibiliProvider",
    "NeteaseProvider",
    "PluginProvider",
    "ProviderRegistry",
    "YouTubeProvider",
]
