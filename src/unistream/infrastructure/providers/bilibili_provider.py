"""Bilibili provider adapter (videos as audio source)."""

import logging
from typing import Any

from unistream.domain.dtos import Song
from unistream.domain.ports.provider import IProviderAdapter
from unistream.domain.value_objects import MusicSource
from unistream.domain.value_objects.normalization import (
    as_text,
    normalize_cover_url,
    parse_duration,
    strip_markup,
)
from unistream.infrastructure.integrations.bilibili_client import BilibiliClient
from unistream.infrastructure.observability.log_messages import LogMessages

logger = logging.getLogger(__name__)

ALBUM_LABEL = "Bilibili"


# Hey future me - search titles come with <em class="keyword">highlight</em> tags and
# covers are protocol-relative ("//i0.hdslb.com/..."). Both are fixed right here.
def map_bilibili_item(item: Any) -> Song | None:
    if not isinstance(item, dict) or not item.get("bvid"):
        return None
    bvid = as_text(item.get("bvid"))
    return Song(
        id=bvid,
        title=strip_markup(item.get("title")),
        artist=as_text(item.get("author"), "Unknown"),
        artist_id=as_text(item.get("mid")) or None,
        album=ALBUM_LABEL,
        cover_url=normalize_cover_url(item.get("pic")),
        source=MusicSource.BILIBILI,
        duration_seconds=parse_duration(item.get("duration")),
        mv_reference_id=bvid,
    )


class BilibiliProvider(IProviderAdapter):
    """Video search on Bilibili."""

    def __init__(self, client: BilibiliClient) -> None:
        self._client = client

    @property
    def source(self) -> MusicSource:
        return MusicSource.BILIBILI

    async def search(
        self,
        query: str,
        credential: str | None = None,
        timeout: float | None = None,
    ) -> list[Song]:
        try:
            items = await self._client.search(query, timeout=timeout)
        except Exception as e:
            logger.warning(LogMessages.provider_failed(provider="BILIBILI", query=query, error=str(e)))
            return []
        songs = []
        for item in items:
            song = map_bilibili_item(item)
            if song is not None:
                songs.append(song)
        return songs
