"""Range-preserving byte relay.

Hey future me - media elements SEEK with Range requests ("bytes=100-") and expect
206 + Content-Range back. The relay forwards Range verbatim, mirrors the handful
of headers players care about, and streams the body chunk by chunk (never buffers
the whole file). It also adds what the player can't: a desktop User-Agent and
caller-supplied headers like Referer (Bilibili answers 403 without one).

Partial-response safety: once headers went out, an upstream error can only END
the stream. Sending an error body into a half-written audio response would just
corrupt it.
"""

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from urllib.parse import urlencode

import httpx

from unistream.config.settings import DESKTOP_USER_AGENT
from unistream.domain.exceptions import RelayUpstreamError, ValidationError
from unistream.infrastructure.integrations.http_pool import HttpClientPool
from unistream.infrastructure.observability.log_messages import LogMessages

logger = logging.getLogger(__name__)

MIRRORED_HEADERS = (
    "content-type",
    "content-length",
    "content-range",
    "accept-ranges",
    "last-modified",
)

RELAY_PATH = "/api/relay"


def build_relay_url(public_base_url: str, target_url: str, referer: str | None = None) -> str:
    """URL under which this service relays `target_url` (optionally with a Referer)."""
    params = {"url": target_url}
    if referer:
        params["referer"] = referer
    return f"{public_base_url.rstrip('/')}{RELAY_PATH}?{urlencode(params)}"


@dataclass
class RelayStream:
    """An open upstream response ready to be piped to the caller."""

    target_url: str
    status_code: int
    headers: dict[str, str]
    _response: httpx.Response

    async def iter_body(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._response.aiter_raw():
                yield chunk
        except httpx.HTTPError as e:
            # headers are already on the wire, terminating is all that is left
            logger.warning(LogMessages.relay_failed(target=self.target_url, error=str(e), headers_sent=True))
        finally:
            await self._response.aclose()

    async def aclose(self) -> None:
        await self._response.aclose()


class RelayService:
    """Opens upstream media responses for the relay endpoint."""

    def __init__(self, http: HttpClientPool, user_agent: str = DESKTOP_USER_AGENT) -> None:
        self._http = http
        self._user_agent = user_agent

    async def open(
        self,
        target_url: str,
        range_header: str | None = None,
        extra_headers: dict[str, str] | None = None,
    ) -> RelayStream:
        """Start the upstream fetch and return once its headers arrived.

        Args:
            target_url: Absolute http(s) URL of the media
            range_header: Inbound Range header, forwarded verbatim
            extra_headers: Overrides such as Referer

        Returns:
            RelayStream with upstream status and mirrored headers

        Raises:
            ValidationError: target_url is not an http(s) URL
            RelayUpstreamError: Upstream unreachable or answered outside 200-399
        """
        if not target_url.startswith(("http://", "https://")):
            raise ValidationError(f"Relay target must be an http(s) URL: {target_url[:80]}")

        headers = {"User-Agent": self._user_agent, **(extra_headers or {})}
        if range_header:
            headers["Range"] = range_header

        client = await self._http.get_client()
        request = client.build_request("GET", target_url, headers=headers)
        try:
            response = await client.send(request, stream=True)
        except httpx.HTTPError as e:
            logger.warning(LogMessages.relay_failed(target=target_url, error=str(e), headers_sent=False))
            raise RelayUpstreamError(f"Upstream unreachable: {e}") from e

        if not 200 <= response.status_code < 400:
            await response.aclose()
            logger.warning(
                LogMessages.relay_failed(
                    target=target_url, error=f"status {response.status_code}", headers_sent=False
                )
            )
            raise RelayUpstreamError(
                f"Upstream answered {response.status_code}", status_code=response.status_code
            )

        mirrored = {
            name: response.headers[name] for name in MIRRORED_HEADERS if name in response.headers
        }
        return RelayStream(
            target_url=target_url,
            status_code=response.status_code,
            headers=mirrored,
            _response=response,
        )
