"""NetEase Cloud Music HTTP client.

Hey future me - this client is DUMB. It knows endpoints and wire
parameters, nothing about Song DTOs or fallbacks. Every method returns the decoded
JSON object and raises ProviderUnavailableError for anything that is not one
(network error, non-2xx, HTML error page, JSON that is not an object).
Mapping lives in providers/netease_provider.py, policies in the application services.

The caller always passes the headers (see CredentialContext) because the cookie
decides what the account is allowed to hear.
"""

import logging
from typing import Any

import httpx

from unistream.domain.exceptions import ProviderUnavailableError
from unistream.infrastructure.integrations.http_pool import HttpClientPool

logger = logging.getLogger(__name__)


class NeteaseClient:
    """Thin wrapper around the NetEase web/desktop API."""

    def __init__(
        self,
        http: HttpClientPool,
        base_url: str = "https://music.163.com",
        search_limit: int = 20,
        timeout: float = 15.0,
    ) -> None:
        self._http = http
        self.base_url = base_url.rstrip("/")
        self._search_limit = search_limit
        self._timeout = timeout

    # Hey future me - CENTRALIZED request! Every endpoint goes through here so error
    # handling and logging look the same for all of them.
    async def _api_request(
        self,
        method: str,
        path: str,
        headers: dict[str, str],
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Make an API request and decode the JSON object.

        Args:
            method: GET or POST
            path: API path (e.g. "/api/cloudsearch/pc")
            headers: Full header set including Cookie
            params: Query parameters
            data: Form body (sent urlencoded)
            timeout: Per-call timeout in seconds

        Returns:
            Decoded JSON object

        Raises:
            ProviderUnavailableError: Network error, bad status or undecodable body
        """
        client = await self._http.get_client()
        url = f"{self.base_url}{path}"
        try:
            response = await client.request(
                method,
                url,
                headers=headers,
                params=params,
                data=data,
                timeout=timeout or self._timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            raise ProviderUnavailableError("NETEASE", f"{path}: {e}") from e
        except ValueError as e:
            raise ProviderUnavailableError("NETEASE", f"{path}: invalid JSON") from e

        if not isinstance(payload, dict):
            raise ProviderUnavailableError("NETEASE", f"{path}: unexpected payload shape")
        return payload

    async def search(
        self, query: str, headers: dict[str, str], timeout: float | None = None
    ) -> dict[str, Any]:
        """Song search (type=1)."""
        return await self._api_request(
            "POST",
            "/api/cloudsearch/pc",
            headers,
            data={
                "s": query,
                "type": 1,
                "offset": 0,
                "limit": self._search_limit,
                "total": "true",
            },
            timeout=timeout,
        )

    async def get_song_url(
        self, song_id: str, bitrate: int, level: str, headers: dict[str, str]
    ) -> dict[str, Any]:
        """Signed playback URL for one song at a bitrate ceiling."""
        return await self._api_request(
            "POST",
            "/api/song/enhance/player/url",
            headers,
            data={"id": song_id, "ids": f"[{song_id}]", "br": bitrate, "level": level},
        )

    async def get_lyric(self, song_id: str, headers: dict[str, str]) -> dict[str, Any]:
        return await self._api_request(
            "GET",
            "/api/song/lyric",
            headers,
            params={"id": song_id, "lv": 1, "kv": 1, "tv": -1},
        )

    async def get_artist_top_songs(self, artist_id: str, headers: dict[str, str]) -> dict[str, Any]:
        return await self._api_request(
            "GET", "/api/artist/top/song", headers, params={"id": artist_id}
        )

    async def get_playlist_detail(self, playlist_id: str, headers: dict[str, str]) -> dict[str, Any]:
        return await self._api_request(
            "GET",
            "/api/v3/playlist/detail",
            headers,
            params={"id": playlist_id, "n": 1000, "s": 8},
        )

    async def get_daily_recommendations(self, headers: dict[str, str]) -> dict[str, Any]:
        """Daily picks. Only meaningful with an authenticated cookie."""
        return await self._api_request("POST", "/api/v3/discovery/recommend/songs", headers)

    async def get_user_playlists(self, uid: str, headers: dict[str, str]) -> dict[str, Any]:
        return await self._api_request(
            "GET",
            "/api/user/playlist",
            headers,
            params={"uid": uid, "limit": 100, "offset": 0},
        )

    async def get_mv_detail(self, mv_id: str, headers: dict[str, str]) -> dict[str, Any]:
        return await self._api_request(
            "GET", "/api/mv/detail", headers, params={"id": mv_id, "type": "mp4"}
        )

    async def get_account(self, headers: dict[str, str], timeout: float = 8.0) -> dict[str, Any]:
        """Account of the cookie's session (code 200 + profile when logged in)."""
        return await self._api_request(
            "POST", "/api/w/nuser/account/get", headers, timeout=timeout
        )

    async def hot_search(self, headers: dict[str, str], timeout: float | None = None) -> dict[str, Any]:
        """Cheap endpoint used as latency probe."""
        return await self._api_request("GET", "/api/search/hot", headers, timeout=timeout)
