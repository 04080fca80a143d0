"""Bilibili web API client (video search used as an audio source)."""

import logging
from typing import Any

import httpx

from unistream.config.settings import DESKTOP_USER_AGENT
from unistream.domain.exceptions import ProviderUnavailableError
from unistream.infrastructure.integrations.http_pool import HttpClientPool

logger = logging.getLogger(__name__)


class BilibiliClient:
    """Search, view (bvid -> cid) and playurl lookups.

    Hey future me - the media URLs Bilibili hands out (upos-*.bilivideo.com) answer 403
    without the www.bilibili.com Referer. A browser <audio> cannot set a Referer, so
    whatever playurl returns must go through the relay. See ResolverService.
    """

    def __init__(
        self,
        http: HttpClientPool,
        api_base_url: str = "https://api.bilibili.com",
        referer: str = "https://www.bilibili.com/",
        timeout: float = 15.0,
        user_agent: str = DESKTOP_USER_AGENT,
    ) -> None:
        self._http = http
        self.api_base_url = api_base_url.rstrip("/")
        self.referer = referer
        self._timeout = timeout
        self._headers = {"User-Agent": user_agent, "Referer": referer}

    async def _get(
        self, path: str, params: dict[str, Any], timeout: float | None = None
    ) -> dict[str, Any]:
        client = await self._http.get_client()
        try:
            response = await client.get(
                f"{self.api_base_url}{path}",
                params=params,
                headers=self._headers,
                timeout=timeout or self._timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            raise ProviderUnavailableError("BILIBILI", f"{path}: {e}") from e
        except ValueError as e:
            raise ProviderUnavailableError("BILIBILI", f"{path}: invalid JSON") from e

        if not isinstance(payload, dict):
            raise ProviderUnavailableError("BILIBILI", f"{path}: unexpected payload shape")
        return payload

    async def search(self, keyword: str, timeout: float | None = None) -> list[dict[str, Any]]:
        """Video search, raw result items in relevance order."""
        payload = await self._get(
            "/x/web-interface/search/type",
            {"search_type": "video", "keyword": keyword},
            timeout=timeout,
        )
        data = payload.get("data") or {}
        result = data.get("result") if isinstance(data, dict) else None
        return [item for item in result or [] if isinstance(item, dict)]

    async def get_cid(self, bvid: str) -> str | None:
        """Internal content id of a public bvid (step 1 of 2)."""
        payload = await self._get("/x/web-interface/view", {"bvid": bvid})
        data = payload.get("data") or {}
        cid = data.get("cid") if isinstance(data, dict) else None
        return str(cid) if cid else None

    async def get_play_url(self, bvid: str, cid: str) -> str | None:
        """Progressive (durl) media URL for bvid+cid (step 2 of 2)."""
        payload = await self._get(
            "/x/player/playurl",
            {
                "bvid": bvid,
                "cid": cid,
                "qn": 64,
                "fnval": 1,
                "platform": "html5",
                "high_quality": 1,
            },
        )
        data = payload.get("data") or {}
        durl = data.get("durl") if isinstance(data, dict) else None
        if not durl or not isinstance(durl[0], dict):
            return None
        return durl[0].get("url") or None

    async def nav(self, timeout: float | None = None) -> dict[str, Any]:
        """Login/nav info. Answers for anonymous callers too, used as latency probe."""
        return await self._get("/x/web-interface/nav", {}, timeout=timeout)
