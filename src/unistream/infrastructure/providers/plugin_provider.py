"""Adapter exposing one installed plugin as a search provider."""

import logging

from unistream.domain.dtos import Song
from unistream.domain.exceptions import PluginFaultError
from unistream.domain.ports.provider import IProviderAdapter
from unistream.domain.value_objects import MusicSource
from unistream.infrastructure.observability.log_messages import LogMessages
from unistream.infrastructure.plugins.loader import PluginHandle

logger = logging.getLogger(__name__)


class PluginProvider(IProviderAdapter):
    """Wraps a PluginHandle. A faulty plugin only ever costs its own results."""

    def __init__(self, handle: PluginHandle) -> None:
        self._handle = handle

    @property
    def source(self) -> MusicSource:
        return MusicSource.PLUGIN

    @property
    def name(self) -> str:
        return f"plugin:{self._handle.id}"

    async def search(
        self,
        query: str,
        credential: str | None = None,
        timeout: float | None = None,
    ) -> list[Song]:
        try:
            return await self._handle.search(query)
        except PluginFaultError as e:
            logger.warning(
                LogMessages.plugin_fault(plugin_id=self._handle.id, operation="search", error=e.message)
            )
            return []
