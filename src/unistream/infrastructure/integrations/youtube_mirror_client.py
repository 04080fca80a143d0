"""Piped and Invidious mirror API client.

Hey future me - these are public front-ends for YouTube. Each call takes the
mirror base URL explicitly; WHICH mirror to try is the EndpointPool's business,
not this client's. A call either returns parsed data or raises
ProviderUnavailableError, so the fallback driver can rotate on it.
"""

import logging
from typing import Any
from urllib.parse import urlencode

import httpx

from unistream.domain.exceptions import ProviderUnavailableError
from unistream.infrastructure.integrations.http_pool import HttpClientPool

logger = logging.getLogger(__name__)


class YouTubeMirrorClient:
    """Search and stream lookups against Piped / Invidious instances."""

    def __init__(self, http: HttpClientPool, timeout: float = 4.0) -> None:
        self._http = http
        self._timeout = timeout

    async def _get_json(
        self, provider: str, url: str, params: dict[str, Any] | None, timeout: float | None
    ) -> Any:
        client = await self._http.get_client()
        try:
            response = await client.get(url, params=params, timeout=timeout or self._timeout)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            raise ProviderUnavailableError(provider, f"{url}: {e}") from e
        except ValueError as e:
            raise ProviderUnavailableError(provider, f"{url}: invalid JSON") from e

    # ---- Piped ---------------------------------------------------------------

    async def piped_search(
        self, instance: str, query: str, timeout: float | None = None
    ) -> list[dict[str, Any]]:
        data = await self._get_json(
            "piped", f"{instance}/search", {"q": query, "filter": "videos"}, timeout
        )
        items = data.get("items") if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise ProviderUnavailableError("piped", f"{instance}: no items in search response")
        return [item for item in items if isinstance(item, dict)]

    async def piped_audio_url(
        self, instance: str, video_id: str, timeout: float | None = None
    ) -> str:
        """First pre-muxed audio stream of a video (usually m4a)."""
        data = await self._get_json("piped", f"{instance}/streams/{video_id}", None, timeout)
        streams = data.get("audioStreams") if isinstance(data, dict) else None
        if not streams or not isinstance(streams[0], dict) or not streams[0].get("url"):
            raise ProviderUnavailableError("piped", f"{instance}: no audio streams for {video_id}")
        return str(streams[0]["url"])

    # ---- Invidious -----------------------------------------------------------

    async def invidious_search(
        self, instance: str, query: str, timeout: float | None = None
    ) -> list[dict[str, Any]]:
        data = await self._get_json(
            "invidious", f"{instance}/api/v1/search", {"q": query, "type": "video"}, timeout
        )
        if not isinstance(data, list):
            raise ProviderUnavailableError("invidious", f"{instance}: search did not return a list")
        return [item for item in data if isinstance(item, dict)]

    async def invidious_stats(self, instance: str, timeout: float | None = None) -> Any:
        return await self._get_json("invidious", f"{instance}/api/v1/stats", None, timeout)

    @staticmethod
    def invidious_latest_version_url(instance: str, video_id: str) -> str:
        """Direct "latest_version" redirect URL (itag 18, proxied by the instance).

        Built, never fetched: the last-resort fallback that may or may not play.
        """
        query = urlencode({"id": video_id, "itag": 18, "local": "true"})
        return f"{instance}/latest_version?{query}"
