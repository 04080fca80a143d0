"""Latency probes for operational visibility.

Probes run concurrently, each with its own timeout, against the SAME endpoints
the real calls use (preferred mirror of each pool, configured backend). They
never rotate or promote anything - looking must not change what we look at.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from unistream.application.services.credentials_service import CredentialContext
from unistream.config.runtime import RuntimeConfig
from unistream.domain.dtos import DiagnosticResult
from unistream.domain.value_objects import ProbeStatus
from unistream.infrastructure.integrations.backend_client import BackendClient
from unistream.infrastructure.integrations.bilibili_client import BilibiliClient
from unistream.infrastructure.integrations.endpoint_pool import EndpointPool
from unistream.infrastructure.integrations.netease_client import NeteaseClient
from unistream.infrastructure.integrations.youtube_mirror_client import YouTubeMirrorClient
from unistream.infrastructure.observability.log_messages import LogMessages

logger = logging.getLogger(__name__)

# a long-lived, always-available video used to probe Piped's stream endpoint
PROBE_VIDEO_ID = "5qap5aO4i9A"


class DiagnosticsService:
    """Runs the probe set and reports ok/error/skipped with latency."""

    def __init__(
        self,
        netease: NeteaseClient,
        credentials: CredentialContext,
        bilibili: BilibiliClient,
        mirrors: YouTubeMirrorClient,
        backend: BackendClient,
        piped_pool: EndpointPool,
        invidious_pool: EndpointPool,
        runtime: RuntimeConfig,
        probe_timeout: float = 5.0,
    ) -> None:
        self._netease = netease
        self._credentials = credentials
        self._bilibili = bilibili
        self._mirrors = mirrors
        self._backend = backend
        self._piped_pool = piped_pool
        self._invidious_pool = invidious_pool
        self._runtime = runtime
        self._timeout = probe_timeout

    async def _probe(
        self, name: str, target: str, call: Callable[[], Awaitable[Any]]
    ) -> DiagnosticResult:
        start = time.perf_counter()
        try:
            await asyncio.wait_for(call(), timeout=self._timeout)
        except TimeoutError:
            message = f"timed out after {self._timeout:.0f}s"
        except Exception as e:
            message = str(e) or type(e).__name__
        else:
            return DiagnosticResult(
                name=name,
                status=ProbeStatus.OK,
                latency_ms=int((time.perf_counter() - start) * 1000),
            )

        logger.info(LogMessages.connection_failed(service=name, target=target, error=message))
        return DiagnosticResult(name=name, status=ProbeStatus.ERROR, message=message)

    async def run(self) -> list[DiagnosticResult]:
        """Run all probes concurrently, results in fixed order."""
        piped = self._piped_pool.pick()
        invidious = self._invidious_pool.pick()
        timeout = self._timeout

        probes = [
            self._probe(
                "netease",
                self._netease.base_url,
                lambda: self._netease.hot_search(self._credentials.guest_headers(), timeout=timeout),
            ),
            self._probe("bilibili", self._bilibili.api_base_url, lambda: self._bilibili.nav(timeout=timeout)),
            self._probe(
                "piped",
                piped,
                lambda: self._mirrors.piped_audio_url(piped, PROBE_VIDEO_ID, timeout=timeout),
            ),
            self._probe(
                "invidious", invidious, lambda: self._mirrors.invidious_stats(invidious, timeout=timeout)
            ),
        ]

        backend_url = self._runtime.backend_relay_url
        if backend_url:
            probes.append(self._probe("backend", backend_url, lambda: self._backend.ping(backend_url, timeout)))

        results = list(await asyncio.gather(*probes))
        if not backend_url:
            results.append(
                DiagnosticResult(
                    name="backend",
                    status=ProbeStatus.SKIPPED,
                    message="no backend relay configured",
                )
            )

        failed = [r.name for r in results if r.status is ProbeStatus.ERROR]
        if failed:
            logger.info(f"Diagnostics: {len(failed)} probe(s) failing: {', '.join(failed)}")
        return results
