"""Shared fixtures.

Hey future me - tests never hit the network. Clients get a real HttpClientPool and
pytest-httpx intercepts the transport; services get AsyncMock clients. Mirror pools
start at index 0 (FirstRandom) so rotation assertions are deterministic.
"""

import random
from collections.abc import AsyncGenerator

import pytest

from unistream.config import MirrorSettings, Settings
from unistream.infrastructure.integrations.http_pool import HttpClientPool

PIPED = ["https://piped-a.test", "https://piped-b.test"]
INVIDIOUS = ["https://inv-a.test", "https://inv-b.test"]
PUBLIC_BASE = "http://unistream.test"


class FirstRandom(random.Random):
    """Random source whose randrange always picks the first entry."""

    def randrange(self, *args, **kwargs) -> int:  # type: ignore[override]
        return 0


@pytest.fixture
def rng() -> random.Random:
    return FirstRandom()


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment and .env."""
    return Settings(
        _env_file=None,
        public_base_url=PUBLIC_BASE,
        enable_server_extraction=False,
        mirrors=MirrorSettings(piped_instances=PIPED, invidious_instances=INVIDIOUS),
    )


@pytest.fixture
async def http_pool() -> AsyncGenerator[HttpClientPool, None]:
    pool = HttpClientPool()
    yield pool
    await pool.close()
