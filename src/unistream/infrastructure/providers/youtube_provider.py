"""YouTube provider adapter.

Hey future me - YouTube is reached through a chain, cheapest-and-most-reliable first:

1. operator backend /search (only when configured, only its YOUTUBE songs count)
2. Piped mirror pool
3. Invidious mirror pool (operator's custom instance first, if set)

Each mirror that fails gets rotate()d away from, the one that answers gets promote()d.
Results are capped (5 by default) - YouTube search is noisy and slow.
"""

import logging
from typing import Any
from urllib.parse import parse_qs, urlparse

from unistream.application.services.fallback import (
    FallbackStep,
    pool_steps,
    run_fallback_chain,
)
from unistream.config.runtime import RuntimeConfig
from unistream.domain.dtos import Song
from unistream.domain.ports.provider import IProviderAdapter
from unistream.domain.value_objects import MusicSource
from unistream.domain.value_objects.normalization import (
    as_text,
    normalize_cover_url,
    parse_duration,
    strip_markup,
)
from unistream.infrastructure.integrations.backend_client import BackendClient
from unistream.infrastructure.integrations.endpoint_pool import EndpointPool
from unistream.infrastructure.integrations.youtube_mirror_client import YouTubeMirrorClient
from unistream.infrastructure.observability.log_messages import LogMessages

logger = logging.getLogger(__name__)

ALBUM_LABEL = "YouTube"
THUMBNAIL_FALLBACK = "https://i.ytimg.com/vi/{video_id}/hqdefault.jpg"


def video_id_from_watch_url(url: Any) -> str:
    """"/watch?v=abc" (Piped) -> "abc"."""
    if not isinstance(url, str) or not url:
        return ""
    query = parse_qs(urlparse(url).query)
    if query.get("v"):
        return query["v"][0]
    return url.replace("/watch?v=", "").strip("/")


def map_piped_item(item: dict[str, Any]) -> Song | None:
    video_id = video_id_from_watch_url(item.get("url"))
    if not video_id:
        return None
    return Song(
        id=video_id,
        title=strip_markup(item.get("title")),
        artist=as_text(item.get("uploaderName"), "Unknown"),
        album=ALBUM_LABEL,
        cover_url=normalize_cover_url(item.get("thumbnail")),
        source=MusicSource.YOUTUBE,
        duration_seconds=parse_duration(item.get("duration")),
        mv_reference_id=video_id,
    )


def map_invidious_item(item: dict[str, Any]) -> Song | None:
    video_id = as_text(item.get("videoId"))
    if not video_id:
        return None
    thumbnails = item.get("videoThumbnails")
    cover = ""
    if isinstance(thumbnails, list) and thumbnails and isinstance(thumbnails[0], dict):
        cover = normalize_cover_url(thumbnails[0].get("url"))
    if not cover.startswith("https://"):
        # some instances hand out relative thumbnail paths
        cover = THUMBNAIL_FALLBACK.format(video_id=video_id)
    return Song(
        id=video_id,
        title=strip_markup(item.get("title")),
        artist=as_text(item.get("author"), "Unknown"),
        album=ALBUM_LABEL,
        cover_url=cover,
        source=MusicSource.YOUTUBE,
        duration_seconds=parse_duration(item.get("lengthSeconds")),
        mv_reference_id=video_id,
    )


def _map_all(items: list[dict[str, Any]], mapper: Any, limit: int) -> list[Song]:
    songs = []
    for item in items:
        song = mapper(item)
        if song is not None:
            songs.append(song)
        if len(songs) >= limit:
            break
    return songs


class YouTubeProvider(IProviderAdapter):
    """YouTube search via backend and mirror pools."""

    def __init__(
        self,
        mirrors: YouTubeMirrorClient,
        backend: BackendClient,
        piped_pool: EndpointPool,
        invidious_pool: EndpointPool,
        runtime: RuntimeConfig,
        result_limit: int = 5,
    ) -> None:
        self._mirrors = mirrors
        self._backend = backend
        self._piped_pool = piped_pool
        self._invidious_pool = invidious_pool
        self._runtime = runtime
        self._limit = result_limit

    @property
    def source(self) -> MusicSource:
        return MusicSource.YOUTUBE

    def build_search_chain(self, query: str) -> list[FallbackStep[list[Song]]]:
        """Ordered search attempts for `query` (exposed for tests)."""
        steps: list[FallbackStep[list[Song]]] = []
        backend_url = self._runtime.backend_relay_url

        if backend_url:

            async def from_backend() -> list[Song]:
                songs = await self._backend.search(backend_url, query)
                return [s for s in songs if s.source is MusicSource.YOUTUBE][: self._limit]

            # an empty answer from the backend just means "try the mirrors"
            steps.append(FallbackStep("backend", from_backend, accept=bool))

        async def from_piped(instance: str) -> list[Song]:
            items = await self._mirrors.piped_search(instance, query)
            return _map_all(items, map_piped_item, self._limit)

        async def from_invidious(instance: str) -> list[Song]:
            items = await self._mirrors.invidious_search(instance, query)
            return _map_all(items, map_invidious_item, self._limit)

        steps.extend(pool_steps(self._piped_pool, from_piped))
        steps.extend(pool_steps(self._invidious_pool, from_invidious))
        return steps

    async def search(
        self,
        query: str,
        credential: str | None = None,
        timeout: float | None = None,
    ) -> list[Song]:
        try:
            outcome = await run_fallback_chain("youtube-search", self.build_search_chain(query))
        except Exception as e:
            logger.warning(LogMessages.provider_failed(provider="YOUTUBE", query=query, error=str(e)))
            return []
        logger.debug(f"YouTube search for '{query}' answered by {outcome.via}")
        return outcome.value
