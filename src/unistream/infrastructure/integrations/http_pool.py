"""Shared HTTP client for all outbound calls of one service context.

Hey future me - ONE httpx.AsyncClient per MusicService, created lazily and
closed in MusicService.close() (the app lifespan calls it). It is an instance,
not a class-level singleton: tests build their own context with their own pool
and nothing leaks between them.

Usage in clients:
    client = await self._http.get_client()
    response = await client.get(url, timeout=budget)
"""

import asyncio
import logging

import httpx

from unistream.config.settings import DESKTOP_USER_AGENT

logger = logging.getLogger(__name__)


class HttpClientPool:
    """Lazily created, connection-pooling httpx client."""

    DEFAULT_TIMEOUT = 15.0
    DEFAULT_MAX_KEEPALIVE = 20
    DEFAULT_MAX_CONNECTIONS = 50

    def __init__(
        self,
        timeout: float | None = None,
        max_keepalive: int | None = None,
        max_connections: int | None = None,
        user_agent: str = DESKTOP_USER_AGENT,
    ) -> None:
        self._timeout = timeout or self.DEFAULT_TIMEOUT
        self._max_keepalive = max_keepalive or self.DEFAULT_MAX_KEEPALIVE
        self._max_connections = max_connections or self.DEFAULT_MAX_CONNECTIONS
        self._user_agent = user_agent
        self._client: httpx.AsyncClient | None = None
        self._lock: asyncio.Lock | None = None

    def _ensure_lock(self) -> asyncio.Lock:
        # asyncio.Lock binds to the running loop, so it is created on first use
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    async def get_client(self) -> httpx.AsyncClient:
        """Get the pooled client, creating it on first call.

        Returns:
            Shared httpx.AsyncClient instance
        """
        if self._client is not None:
            return self._client

        async with self._ensure_lock():
            if self._client is None:
                self._client = httpx.AsyncClient(
                    timeout=httpx.Timeout(self._timeout),
                    limits=httpx.Limits(
                        max_keepalive_connections=self._max_keepalive,
                        max_connections=self._max_connections,
                    ),
                    headers={"User-Agent": self._user_agent},
                    http2=True,
                    follow_redirects=True,
                )
                logger.info(
                    "HTTP client pool initialized (timeout=%.1fs, keepalive=%d, max_conn=%d)",
                    self._timeout,
                    self._max_keepalive,
                    self._max_connections,
                )
            return self._client

    async def close(self) -> None:
        """Close the client and release all connections.

        After close(), get_client() creates a fresh client.
        """
        async with self._ensure_lock():
            if self._client is not None:
                await self._client.aclose()
                self._client = None
                logger.info("HTTP client pool closed")
