"""
Provider Adapter Interface for UniStream.

Hey future me - this is the HEART of the aggregation architecture!
Every music source (NetEase, Bilibili, YouTube mirrors, user plugins) implements
this interface. Methods ALWAYS return Song DTOs - NEVER raw JSON!

Contract for search():
1. FAIL SOFT. Network error, malformed payload, timeout -> empty list + log entry.
   The aggregation engine treats "no results" and "provider errored" the same.
2. Keep the source's native relevance order.
3. Normalize on ingest (duration, cover URL, markup, fee tier) - see
   domain/value_objects/normalization.py.
"""

from abc import ABC, abstractmethod

from unistream.domain.dtos import Song
from unistream.domain.value_objects import MusicSource


class IProviderAdapter(ABC):
    """Abstract base class for all search providers."""

    @property
    @abstractmethod
    def source(self) -> MusicSource:
        """Source kind this adapter produces songs for."""
        ...

    @property
    def name(self) -> str:
        """Unique provider name inside one aggregation call.

        Hey future me - built-in adapters just use the source name. Plugins
        override this ("plugin:kugou") because many plugins share MusicSource.PLUGIN.
        """
        return self.source.value

    @abstractmethod
    async def search(
        self,
        query: str,
        credential: str | None = None,
        timeout: float | None = None,
    ) -> list[Song]:
        """
        Search this source. MUST NOT raise.

        Args:
            query: Free-text query
            credential: Stored raw credential (only NetEase cares)
            timeout: Remaining budget in seconds, adapters may use it for their HTTP calls

        Returns:
            Songs in native relevance order (empty on any failure)
        """
        ...


__all__ = ["IProviderAdapter"]
