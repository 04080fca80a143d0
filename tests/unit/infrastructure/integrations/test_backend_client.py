"""Tests for the relay backend client."""

import re

import pytest
from pytest_httpx import HTTPXMock

from unistream.domain.exceptions import ProviderUnavailableError
from unistream.domain.value_objects import MusicSource
from unistream.infrastructure.integrations.backend_client import BackendClient
from unistream.infrastructure.integrations.http_pool import HttpClientPool

BASE = "http://nas.local:3001/api"


@pytest.fixture
def client(http_pool: HttpClientPool) -> BackendClient:
    return BackendClient(http_pool, timeout=1.0, resolve_timeout=1.0)


class TestBackendClient:
    async def test_search_maps_unified_songs(self, client: BackendClient, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            url=re.compile(rf"{re.escape(BASE)}/search\?.*"),
            json={
                "songs": [
                    {"id": "abc", "title": "t", "artist": "a", "source": "YOUTUBE", "coverUrl": "https://c"},
                    {"title": "no id"},
                ]
            },
        )

        songs = await client.search(BASE, "jay")

        assert [s.key for s in songs] == [(MusicSource.YOUTUBE, "abc")]
        assert songs[0].cover_url == "https://c"

    async def test_search_without_songs_list_fails(self, client: BackendClient, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=re.compile(rf"{re.escape(BASE)}/search\?.*"), json={"error": "x"})

        with pytest.raises(ProviderUnavailableError):
            await client.search(BASE, "jay")

    async def test_resolve(self, client: BackendClient, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            url=re.compile(rf"{re.escape(BASE)}/resolve\?.*"),
            json={"url": "http://nas.local:3001/api/relay?url=x"},
        )

        url = await client.resolve(BASE, "BV1xx", MusicSource.BILIBILI)

        assert url == "http://nas.local:3001/api/relay?url=x"
        params = httpx_mock.get_request().url.params
        assert params["id"] == "BV1xx"
        assert params["source"] == "BILIBILI"

    async def test_resolve_without_url_fails(self, client: BackendClient, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=re.compile(rf"{re.escape(BASE)}/resolve\?.*"), json={"url": ""})

        with pytest.raises(ProviderUnavailableError, match="no url"):
            await client.resolve(BASE, "1", MusicSource.YOUTUBE)
