"""Tests for the range-preserving relay."""

import httpx
import pytest
from pytest_httpx import HTTPXMock

from unistream.application.services.relay_service import RelayService, build_relay_url
from unistream.domain.exceptions import RelayUpstreamError, ValidationError
from unistream.infrastructure.integrations.http_pool import HttpClientPool

MEDIA = "https://upos-sz.bilivideo.test/audio.m4s"


class TestBuildRelayUrl:
    def test_target_and_referer_are_encoded(self) -> None:
        url = build_relay_url("http://host:8000/", MEDIA, "https://www.bilibili.com/")

        assert url.startswith("http://host:8000/api/relay?url=https%3A%2F%2Fupos-sz")
        assert "referer=https%3A%2F%2Fwww.bilibili.com%2F" in url

    def test_referer_is_optional(self) -> None:
        assert "referer" not in build_relay_url("http://host", MEDIA)


class TestRelayService:
    @pytest.fixture
    def relay(self, http_pool: HttpClientPool) -> RelayService:
        return RelayService(http_pool)

    async def test_range_is_forwarded_and_partial_content_mirrored(
        self, relay: RelayService, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(
            url=MEDIA,
            status_code=206,
            headers={
                "Content-Type": "audio/mp4",
                "Content-Range": "bytes 100-103/1000",
                "Accept-Ranges": "bytes",
                "Set-Cookie": "sid=1",
            },
            content=b"\x00\x01\x02\x03",
        )

        stream = await relay.open(MEDIA, range_header="bytes=100-", extra_headers={"Referer": "https://www.bilibili.com/"})
        body = b"".join([chunk async for chunk in stream.iter_body()])

        sent = httpx_mock.get_request()
        assert sent.headers["Range"] == "bytes=100-"
        assert sent.headers["Referer"] == "https://www.bilibili.com/"
        assert "Mozilla" in sent.headers["User-Agent"]
        assert stream.status_code == 206
        assert stream.headers["content-range"] == "bytes 100-103/1000"
        assert "set-cookie" not in stream.headers
        assert body == b"\x00\x01\x02\x03"

    async def test_no_range_header_when_caller_sent_none(
        self, relay: RelayService, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(url=MEDIA, content=b"abc")

        stream = await relay.open(MEDIA)
        await stream.aclose()

        assert "Range" not in httpx_mock.get_request().headers
        assert stream.status_code == 200

    async def test_upstream_rejection(self, relay: RelayService, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=MEDIA, status_code=403)

        with pytest.raises(RelayUpstreamError) as exc_info:
            await relay.open(MEDIA)

        assert exc_info.value.status_code == 403

    async def test_upstream_unreachable(self, relay: RelayService, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_exception(httpx.ConnectError("refused"), url=MEDIA)

        with pytest.raises(RelayUpstreamError, match="Upstream unreachable"):
            await relay.open(MEDIA)

    @pytest.mark.parametrize("target", ["file:///etc/passwd", "ftp://x/y", "not a url"])
    async def test_non_http_target_is_rejected(self, relay: RelayService, target: str) -> None:
        with pytest.raises(ValidationError):
            await relay.open(target)

    async def test_upstream_failure_after_headers_ends_the_body(
        self, relay: RelayService, httpx_mock: HTTPXMock
    ) -> None:
        """Once 206 went out the player only sees a short body, never an error payload."""

        class DroppedConnection(httpx.AsyncByteStream):
            async def __aiter__(self):
                yield b"abc"
                raise httpx.ReadError("connection reset by peer")

        httpx_mock.add_response(
            url=MEDIA,
            status_code=206,
            headers={"Content-Range": "bytes 0-999/1000"},
            stream=DroppedConnection(),
        )

        stream = await relay.open(MEDIA, range_header="bytes=0-")
        chunks = [chunk async for chunk in stream.iter_body()]

        assert stream.status_code == 206
        assert stream.headers["content-range"] == "bytes 0-999/1000"
        assert chunks == [b"abc"]
