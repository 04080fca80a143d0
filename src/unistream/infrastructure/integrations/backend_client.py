"""Client for an operator-run relay backend (usually another unistream instance).

Contract:
    GET {base}/search?q=           -> {"songs": [UnifiedSong, ...]}
    GET {base}/resolve?id=&source= -> {"url": "..."}
"""

import logging
from typing import Any

import httpx

from unistream.domain.dtos import Song, song_from_mapping
from unistream.domain.exceptions import ProviderUnavailableError
from unistream.domain.value_objects import MusicSource
from unistream.infrastructure.integrations.http_pool import HttpClientPool

logger = logging.getLogger(__name__)


class BackendClient:
    """Talks to whatever base URL the operator configured at call time."""

    def __init__(
        self,
        http: HttpClientPool,
        timeout: float = 8.0,
        resolve_timeout: float = 10.0,
    ) -> None:
        self._http = http
        self._timeout = timeout
        self._resolve_timeout = resolve_timeout

    async def _get_json(self, url: str, params: dict[str, Any], timeout: float) -> Any:
        client = await self._http.get_client()
        try:
            response = await client.get(url, params=params, timeout=timeout)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            raise ProviderUnavailableError("backend", f"{url}: {e}") from e
        except ValueError as e:
            raise ProviderUnavailableError("backend", f"{url}: invalid JSON") from e

    async def search(self, base_url: str, query: str, timeout: float | None = None) -> list[Song]:
        """Search through the backend and map its unified songs."""
        data = await self._get_json(f"{base_url}/search", {"q": query}, timeout or self._timeout)
        songs = data.get("songs") if isinstance(data, dict) else None
        if not isinstance(songs, list):
            raise ProviderUnavailableError("backend", "search response has no songs list")
        return [song_from_mapping(s) for s in songs if isinstance(s, dict) and s.get("id")]

    async def resolve(self, base_url: str, song_id: str, source: MusicSource) -> str:
        """Ask the backend for a playable URL.

        Raises:
            ProviderUnavailableError: Backend unreachable or answered without url
        """
        data = await self._get_json(
            f"{base_url}/resolve",
            {"id": song_id, "source": source.value},
            self._resolve_timeout,
        )
        url = data.get("url") if isinstance(data, dict) else None
        if not url or not isinstance(url, str):
            raise ProviderUnavailableError("backend", f"no url for {source.value}:{song_id}")
        return url

    async def ping(self, base_url: str, timeout: float) -> None:
        await self._get_json(f"{base_url}/search", {"q": "test"}, timeout)
