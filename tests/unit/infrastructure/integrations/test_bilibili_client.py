"""Tests for the Bilibili web API client."""

import re

import pytest
from pytest_httpx import HTTPXMock

from unistream.domain.exceptions import ProviderUnavailableError
from unistream.infrastructure.integrations.bilibili_client import BilibiliClient
from unistream.infrastructure.integrations.http_pool import HttpClientPool

API = "https://api.bilibili.com"


def _url(path: str) -> re.Pattern[str]:
    return re.compile(rf"{re.escape(API)}{re.escape(path)}(\?.*)?$")


@pytest.fixture
def client(http_pool: HttpClientPool) -> BilibiliClient:
    return BilibiliClient(http_pool, api_base_url=API, referer="https://www.bilibili.com/")


class TestBilibiliClient:
    async def test_search_returns_result_items_and_sends_referer(
        self, client: BilibiliClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(
            url=_url("/x/web-interface/search/type"),
            json={"code": 0, "data": {"result": [{"bvid": "BV1"}, "junk", {"bvid": "BV2"}]}},
        )

        items = await client.search("晴天")

        assert [i["bvid"] for i in items] == ["BV1", "BV2"]
        request = httpx_mock.get_request()
        assert request.headers["Referer"] == "https://www.bilibili.com/"
        assert request.url.params["search_type"] == "video"

    async def test_search_without_result_is_empty(
        self, client: BilibiliClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(url=_url("/x/web-interface/search/type"), json={"code": -412, "data": None})

        assert await client.search("x") == []

    async def test_get_cid(self, client: BilibiliClient, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=_url("/x/web-interface/view"), json={"data": {"cid": 279786}})

        assert await client.get_cid("BV1xx") == "279786"

    async def test_get_cid_missing(self, client: BilibiliClient, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=_url("/x/web-interface/view"), json={"code": -404, "data": None})

        assert await client.get_cid("BV1xx") is None

    async def test_get_play_url_takes_first_durl(
        self, client: BilibiliClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(
            url=_url("/x/player/playurl"),
            json={"data": {"durl": [{"url": "https://upos-sz.bilivideo.com/a.mp4"}, {"url": "b"}]}},
        )

        url = await client.get_play_url("BV1xx", "279786")

        assert url == "https://upos-sz.bilivideo.com/a.mp4"
        params = httpx_mock.get_request().url.params
        assert params["qn"] == "64"
        assert params["platform"] == "html5"

    async def test_get_play_url_without_durl(self, client: BilibiliClient, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=_url("/x/player/playurl"), json={"data": {"durl": []}})

        assert await client.get_play_url("BV1xx", "1") is None

    async def test_http_error_is_provider_unavailable(
        self, client: BilibiliClient, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(url=_url("/x/web-interface/nav"), status_code=412)

        with pytest.raises(ProviderUnavailableError, match="BILIBILI"):
            await client.nav()
