"""Tests for the YouTube provider's search chain."""

import random
from unittest.mock import AsyncMock

import pytest

from unistream.config.runtime import RuntimeConfig
from unistream.domain.dtos import Song
from unistream.domain.exceptions import ProviderUnavailableError
from unistream.domain.value_objects import MusicSource
from unistream.infrastructure.integrations.backend_client import BackendClient
from unistream.infrastructure.integrations.endpoint_pool import EndpointPool
from unistream.infrastructure.integrations.youtube_mirror_client import YouTubeMirrorClient
from unistream.infrastructure.providers.youtube_provider import (
    YouTubeProvider,
    map_invidious_item,
    map_piped_item,
    video_id_from_watch_url,
)

PIPED = ["https://p1.test", "https://p2.test"]
INVIDIOUS = ["https://i1.test", "https://i2.test"]


def _piped_items(n: int) -> list[dict]:
    return [{"url": f"/watch?v=vid{i}", "title": f"t{i}", "uploaderName": "u", "duration": 200} for i in range(n)]


@pytest.fixture
def mirrors() -> AsyncMock:
    return AsyncMock(spec=YouTubeMirrorClient)


@pytest.fixture
def backend() -> AsyncMock:
    return AsyncMock(spec=BackendClient)


@pytest.fixture
def runtime() -> RuntimeConfig:
    return RuntimeConfig()


@pytest.fixture
def piped_pool(rng: random.Random) -> EndpointPool:
    return EndpointPool("piped", PIPED, rng=rng)


@pytest.fixture
def invidious_pool(rng: random.Random) -> EndpointPool:
    return EndpointPool("invidious", INVIDIOUS, rng=rng)


@pytest.fixture
def provider(
    mirrors: AsyncMock,
    backend: AsyncMock,
    piped_pool: EndpointPool,
    invidious_pool: EndpointPool,
    runtime: RuntimeConfig,
) -> YouTubeProvider:
    return YouTubeProvider(mirrors, backend, piped_pool, invidious_pool, runtime, result_limit=5)


class TestMappers:
    def test_video_id_from_watch_url(self) -> None:
        assert video_id_from_watch_url("/watch?v=dQw4w9WgXcQ") == "dQw4w9WgXcQ"
        assert video_id_from_watch_url(None) == ""

    def test_map_piped_item(self) -> None:
        song = map_piped_item(
            {"url": "/watch?v=abc", "title": "T", "uploaderName": "U", "thumbnail": "https://t", "duration": 61}
        )
        assert song is not None
        assert (song.id, song.artist, song.album, song.duration_seconds) == ("abc", "U", "YouTube", 61)

    def test_map_invidious_relative_thumbnail_falls_back(self) -> None:
        song = map_invidious_item(
            {"videoId": "abc", "title": "T", "author": "A", "videoThumbnails": [{"url": "/vi/abc/hq.jpg"}]}
        )
        assert song is not None
        assert song.cover_url == "https://i.ytimg.com/vi/abc/hqdefault.jpg"


class TestYouTubeSearchChain:
    async def test_piped_answer_is_capped_and_promoted(
        self, provider: YouTubeProvider, mirrors: AsyncMock, piped_pool: EndpointPool
    ) -> None:
        mirrors.piped_search.return_value = _piped_items(8)

        songs = await provider.search("jay")

        assert len(songs) == 5
        assert all(s.source is MusicSource.YOUTUBE for s in songs)
        assert piped_pool.pick() == "https://p1.test"
        mirrors.invidious_search.assert_not_awaited()

    async def test_failed_mirror_rotates_and_next_one_is_promoted(
        self, provider: YouTubeProvider, mirrors: AsyncMock, piped_pool: EndpointPool
    ) -> None:
        async def piped_search(instance: str, query: str) -> list[dict]:
            if instance == "https://p1.test":
                raise ProviderUnavailableError("piped", "502")
            return _piped_items(2)

        mirrors.piped_search.side_effect = piped_search

        songs = await provider.search("jay")

        assert [s.id for s in songs] == ["vid0", "vid1"]
        assert piped_pool.pick() == "https://p2.test"

    async def test_falls_through_to_invidious(
        self,
        provider: YouTubeProvider,
        mirrors: AsyncMock,
        invidious_pool: EndpointPool,
    ) -> None:
        mirrors.piped_search.side_effect = ProviderUnavailableError("piped", "down")
        mirrors.invidious_search.return_value = [{"videoId": "inv1", "title": "x", "author": "a"}]

        songs = await provider.search("jay")

        assert [s.id for s in songs] == ["inv1"]
        assert mirrors.piped_search.await_count == 2
        assert invidious_pool.pick() == "https://i1.test"

    async def test_everything_down_is_empty(self, provider: YouTubeProvider, mirrors: AsyncMock) -> None:
        mirrors.piped_search.side_effect = ProviderUnavailableError("piped", "down")
        mirrors.invidious_search.side_effect = ProviderUnavailableError("invidious", "down")

        assert await provider.search("jay") == []

    async def test_backend_first_when_configured(
        self,
        provider: YouTubeProvider,
        mirrors: AsyncMock,
        backend: AsyncMock,
        runtime: RuntimeConfig,
    ) -> None:
        runtime.backend_relay_url = "http://nas:3001/api"
        backend.search.return_value = [
            Song(id="b1", title="t", artist="a", album="", cover_url="", source=MusicSource.YOUTUBE),
            Song(id="n1", title="t", artist="a", album="", cover_url="", source=MusicSource.NETEASE),
        ]

        songs = await provider.search("jay")

        assert [s.id for s in songs] == ["b1"]
        mirrors.piped_search.assert_not_awaited()

    async def test_empty_backend_answer_falls_through(
        self,
        provider: YouTubeProvider,
        mirrors: AsyncMock,
        backend: AsyncMock,
        runtime: RuntimeConfig,
    ) -> None:
        runtime.backend_relay_url = "http://nas:3001/api"
        backend.search.return_value = []
        mirrors.piped_search.return_value = _piped_items(1)

        songs = await provider.search("jay")

        assert [s.id for s in songs] == ["vid0"]

    def test_override_is_tried_first(self, provider: YouTubeProvider, invidious_pool: EndpointPool) -> None:
        invidious_pool.set_override("https://mine.test")

        names = [step.name for step in provider.build_search_chain("q")]

        assert names == [
            "piped:https://p1.test",
            "piped:https://p2.test",
            "invidious:https://mine.test",
            "invidious:https://i1.test",
            "invidious:https://i2.test",
        ]
