"""Multi-provider search aggregation.

Hey future me - this is THE fan-out engine. One query goes to every provider at
once (NetEase ~1s, YouTube mirrors 1-8s or dead), and results come back in
ARRIVAL order, not a fixed priority. Rules:

1. Each provider gets its OWN budget (RuntimeConfig.timeout_for). A provider that
   blows its budget counts as "no results", never as an aggregation failure.
   Total wall clock ~= the slowest budget, not the sum.
2. Dedupe by (source, id) against what was already emitted for THIS query.
   Never across sources - two sources may return "the same" song and both stay.
3. Within a provider, native order is kept. No cross-provider ranking.
4. If the consumer stops listening early, the remaining provider tasks are NOT
   cancelled. They finish (or time out) on their own; we only keep a reference
   so they are not garbage collected mid-flight.
"""

import asyncio
import logging
import time
from collections.abc import AsyncIterator

from unistream.config.runtime import RuntimeConfig
from unistream.domain.dtos import ProviderResult, Song
from unistream.domain.ports.provider import IProviderAdapter
from unistream.infrastructure.observability.log_messages import LogMessages
from unistream.infrastructure.observability.tracing import get_tracer
from unistream.infrastructure.plugins.registry import PluginRegistry
from unistream.infrastructure.providers.registry import ProviderRegistry

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)


class SearchService:
    """Fans one query out to all active providers."""

    def __init__(
        self,
        providers: ProviderRegistry,
        plugins: PluginRegistry,
        runtime: RuntimeConfig,
    ) -> None:
        self._providers = providers
        self._plugins = plugins
        self._runtime = runtime
        self._background: set[asyncio.Task[ProviderResult]] = set()

    @property
    def pending_tasks(self) -> int:
        """Provider tasks still running (also those of abandoned streams)."""
        return len(self._background)

    async def _run_provider(
        self, provider: IProviderAdapter, query: str, credential: str | None
    ) -> ProviderResult:
        """One provider branch. Never raises."""
        budget = self._runtime.timeout_for(provider.source.value)
        start = time.perf_counter()

        with tracer.start_as_current_span(
            "provider.search",
            attributes={"provider": provider.name, "budget_ms": int(budget * 1000)},
        ) as span:
            error: str | None = None
            songs: list[Song] = []
            try:
                songs = await asyncio.wait_for(
                    provider.search(query, credential=credential, timeout=budget),
                    timeout=budget,
                )
            except TimeoutError:
                error = f"timed out after {int(budget * 1000)}ms"
            except Exception as e:
                # adapters must not raise, but a broken one must not take the others down
                error = f"{type(e).__name__}: {e}"

            elapsed_ms = int((time.perf_counter() - start) * 1000)
            span.set_attribute("songs", len(songs))
            span.set_attribute("elapsed_ms", elapsed_ms)

            if error is not None:
                span.set_attribute("error", error)
                logger.warning(
                    LogMessages.provider_failed(provider=provider.name, query=query, error=error)
                )
                return ProviderResult(
                    source=provider.source,
                    provider=provider.name,
                    success=False,
                    elapsed_ms=elapsed_ms,
                    error=error,
                )

        logger.debug(f"Provider {provider.name} returned {len(songs)} songs in {elapsed_ms}ms")
        return ProviderResult(
            source=provider.source,
            provider=provider.name,
            songs=list(songs),
            elapsed_ms=elapsed_ms,
        )

    async def search_stream(
        self, query: str, credential: str | None = None
    ) -> AsyncIterator[ProviderResult]:
        """Yield one ProviderResult per provider as each one finishes.

        Songs in each yielded result are only the ones not emitted before for
        this query. Failed/timed-out providers are yielded too (empty, success=False)
        so callers can show provenance.

        Args:
            query: Free-text query (blank queries yield nothing)
            credential: Stored raw credential, forwarded to every provider

        Yields:
            ProviderResult in arrival order
        """
        query = query.strip()
        if not query:
            return

        providers = self._providers.active(self._plugins)
        if not providers:
            return

        tasks = []
        for provider in providers:
            task = asyncio.create_task(
                self._run_provider(provider, query, credential),
                name=f"search:{provider.name}",
            )
            self._background.add(task)
            task.add_done_callback(self._background.discard)
            tasks.append(task)

        emitted: set[tuple] = set()
        for next_done in asyncio.as_completed(tasks):
            result = await next_done
            fresh: list[Song] = []
            for song in result.songs:
                if song.key in emitted:
                    continue
                emitted.add(song.key)
                fresh.append(song)
            result.songs = fresh
            yield result

    async def search(self, query: str, credential: str | None = None) -> list[Song]:
        """Batch variant: every provider's songs, concatenated in arrival order."""
        songs: list[Song] = []
        async for result in self.search_stream(query, credential):
            songs.extend(result.songs)
        logger.info(f"Search '{query}' produced {len(songs)} songs")
        return songs
