"""Playback URL resolution per source.

Hey future me - resolve() turns a Song into something a media element can load.
Each source has its own policy:

NETEASE   signed URL at the requested tier, then lower tiers. Trial/preview or a
          paid song without URL -> PaywallRequiredError (NOT ResolutionFailed, the
          UI says "VIP song" instead of "failed to load"). Lyric comes along,
          its failure never fails the resolution. A non-200 entry code on its
          own is NOT a paywall: it only becomes one when the song is a
          subscription song (fee from the url entry or the search result),
          otherwise it is ResolutionFailed, so region blocks and removed
          songs are not reported as "VIP".
YOUTUBE   backend -> yt-dlp on this host -> Piped pool -> Invidious latest_version
BILIBILI  backend -> view (bvid -> cid) -> playurl, ALWAYS wrapped in our relay
          (the CDN wants a Referer a player cannot send)
PLUGIN    the plugin's own get_media_url, missing capability = cannot play
LOCAL     identity, the stored reference already plays

Only PaywallRequiredError and ResolutionFailedError (incl. PlaybackUnsupportedError)
leave this service.
"""

import logging
from typing import Any

from unistream.application.services.credentials_service import CredentialContext
from unistream.application.services.fallback import (
    FallbackStep,
    pool_steps,
    run_fallback_chain,
)
from unistream.application.services.relay_service import build_relay_url
from unistream.config.runtime import RuntimeConfig
from unistream.domain.dtos import ResolvedMedia, Song
from unistream.domain.exceptions import (
    PaywallRequiredError,
    PlaybackUnsupportedError,
    PluginFaultError,
    ProviderUnavailableError,
    ResolutionFailedError,
)
from unistream.domain.value_objects import AudioQuality, FeeTier, MusicSource
from unistream.domain.value_objects.normalization import map_netease_fee, normalize_cover_url
from unistream.infrastructure.integrations.backend_client import BackendClient
from unistream.infrastructure.integrations.bilibili_client import BilibiliClient
from unistream.infrastructure.integrations.endpoint_pool import EndpointPool
from unistream.infrastructure.integrations.netease_client import NeteaseClient
from unistream.infrastructure.integrations.youtube_extractor import YouTubeExtractor
from unistream.infrastructure.integrations.youtube_mirror_client import YouTubeMirrorClient
from unistream.infrastructure.observability.log_messages import LogMessages
from unistream.infrastructure.plugins.registry import PluginRegistry

logger = logging.getLogger(__name__)

YT_PLAY_PATH = "/api/yt/play"


class ResolverService:
    """Per-source resolution policies."""

    def __init__(
        self,
        netease: NeteaseClient,
        credentials: CredentialContext,
        bilibili: BilibiliClient,
        mirrors: YouTubeMirrorClient,
        backend: BackendClient,
        piped_pool: EndpointPool,
        invidious_pool: EndpointPool,
        plugins: PluginRegistry,
        runtime: RuntimeConfig,
        public_base_url: str = "",
        extractor: YouTubeExtractor | None = None,
    ) -> None:
        self._netease = netease
        self._credentials = credentials
        self._bilibili = bilibili
        self._mirrors = mirrors
        self._backend = backend
        self._piped_pool = piped_pool
        self._invidious_pool = invidious_pool
        self._plugins = plugins
        self._runtime = runtime
        self._public_base_url = public_base_url.rstrip("/")
        self._extractor = extractor

    async def resolve(
        self,
        song: Song,
        quality: AudioQuality = AudioQuality.STANDARD,
        credential: str | None = None,
    ) -> ResolvedMedia:
        """Resolve a playable URL for `song`.

        Args:
            song: Song reference (source + id are what matters)
            quality: Requested tier, NetEase negotiates down from it
            credential: Stored raw credential (NetEase only)

        Returns:
            ResolvedMedia with url, optional lyric and the step that produced it

        Raises:
            PaywallRequiredError: Content is access-gated
            ResolutionFailedError: No fallback produced a URL
        """
        try:
            if song.source is MusicSource.NETEASE:
                return await self._resolve_netease(song, quality, credential)
            if song.source is MusicSource.YOUTUBE:
                return await self._resolve_youtube(song)
            if song.source is MusicSource.BILIBILI:
                return await self._resolve_bilibili(song)
            if song.source is MusicSource.PLUGIN:
                return await self._resolve_plugin(song)
            return self._resolve_local(song)
        except ResolutionFailedError as e:
            logger.warning(
                LogMessages.resolution_failed(source=song.source.value, song_id=song.id, reason=e.reason)
            )
            raise

    # ---- NETEASE -------------------------------------------------------------

    async def _resolve_netease(
        self, song: Song, quality: AudioQuality, credential: str | None
    ) -> ResolvedMedia:
        headers = self._credentials.resolve_headers(credential)
        # fee flag as reported by the url endpoint, more current than the search result
        reported_fees: list[FeeTier] = []

        def tier_step(tier: AudioQuality) -> FallbackStep[str]:
            async def attempt() -> str:
                payload = await self._netease.get_song_url(song.id, tier.bitrate, tier.value, headers)
                data = payload.get("data")
                entry: dict[str, Any] = {}
                if isinstance(data, list) and data and isinstance(data[0], dict):
                    entry = data[0]
                if entry.get("freeTrialInfo"):
                    raise PaywallRequiredError("NETEASE", song.id, "only a trial preview is available")
                url = entry.get("url")
                if not url or entry.get("code") != 200:
                    if "fee" in entry:
                        reported_fees.append(map_netease_fee(entry["fee"]))
                    raise ProviderUnavailableError("NETEASE", f"no url at {tier.value}")
                return normalize_cover_url(url)

            return FallbackStep(f"netease:{tier.value}", attempt)

        try:
            outcome = await run_fallback_chain(
                "netease-url", [tier_step(t) for t in quality.with_lower_tiers()]
            )
        except ProviderUnavailableError as e:
            fee = reported_fees[-1] if reported_fees else song.fee_tier
            if fee is FeeTier.SUBSCRIPTION:
                raise PaywallRequiredError("NETEASE", song.id, "subscription required") from e
            raise ResolutionFailedError("NETEASE", song.id, e.message) from e

        return ResolvedMedia(
            url=outcome.value,
            lyric=await self._netease_lyric(song.id, headers),
            via=outcome.via,
        )

    async def _netease_lyric(self, song_id: str, headers: dict[str, str]) -> str | None:
        try:
            payload = await self._netease.get_lyric(song_id, headers)
        except ProviderUnavailableError as e:
            logger.debug(f"Lyric fetch for {song_id} failed: {e}")
            return None
        lrc = payload.get("lrc")
        lyric = lrc.get("lyric") if isinstance(lrc, dict) else None
        return lyric if isinstance(lyric, str) and lyric else None

    # ---- YOUTUBE -------------------------------------------------------------

    def _backend_step(self, song: Song) -> FallbackStep[str] | None:
        backend_url = self._runtime.backend_relay_url
        if not backend_url:
            return None
        return FallbackStep(
            "backend", lambda: self._backend.resolve(backend_url, song.id, song.source)
        )

    def build_youtube_chain(self, video_id: str, song: Song | None = None) -> list[FallbackStep[str]]:
        """Ordered resolution attempts for a YouTube video (exposed for tests)."""
        song = song or Song(
            id=video_id, title="", artist="", album="", cover_url="", source=MusicSource.YOUTUBE
        )
        steps: list[FallbackStep[str]] = []

        backend_step = self._backend_step(song)
        if backend_step is not None:
            steps.append(backend_step)

        if self._extractor is not None:
            extractor = self._extractor

            async def server_extraction() -> str:
                await extractor.extract_audio(video_id)
                return f"{self._public_base_url}{YT_PLAY_PATH}?id={video_id}"

            steps.append(FallbackStep("yt-dlp", server_extraction))

        steps.extend(
            pool_steps(self._piped_pool, lambda inst: self._mirrors.piped_audio_url(inst, video_id))
        )

        async def latest_version() -> str:
            # last resort: built, not verified. May or may not play.
            return self._mirrors.invidious_latest_version_url(self._invidious_pool.pick(), video_id)

        steps.append(FallbackStep("invidious:latest_version", latest_version))
        return steps

    async def _resolve_youtube(self, song: Song) -> ResolvedMedia:
        try:
            outcome = await run_fallback_chain("youtube-url", self.build_youtube_chain(song.id, song))
        except ProviderUnavailableError as e:
            raise ResolutionFailedError("YOUTUBE", song.id, e.message) from e
        return ResolvedMedia(url=outcome.value, via=outcome.via)

    # ---- BILIBILI ------------------------------------------------------------

    async def _bilibili_direct(self, bvid: str) -> str:
        cid = await self._bilibili.get_cid(bvid)
        if not cid:
            raise ProviderUnavailableError("BILIBILI", f"no cid for {bvid}")
        media_url = await self._bilibili.get_play_url(bvid, cid)
        if not media_url:
            raise ProviderUnavailableError("BILIBILI", f"no durl for {bvid}")
        return build_relay_url(self._public_base_url, media_url, self._bilibili.referer)

    async def _resolve_bilibili(self, song: Song) -> ResolvedMedia:
        steps: list[FallbackStep[str]] = []
        backend_step = self._backend_step(song)
        if backend_step is not None:
            # the backend hands out its own relay URL already, used as-is
            steps.append(backend_step)
        steps.append(FallbackStep("bilibili", lambda: self._bilibili_direct(song.id)))

        try:
            outcome = await run_fallback_chain("bilibili-url", steps)
        except ProviderUnavailableError as e:
            raise ResolutionFailedError("BILIBILI", song.id, e.message) from e
        return ResolvedMedia(url=outcome.value, via=outcome.via)

    # ---- PLUGIN / LOCAL ------------------------------------------------------

    async def _resolve_plugin(self, song: Song) -> ResolvedMedia:
        if not song.plugin_id:
            raise PlaybackUnsupportedError("PLUGIN", song.id, "song carries no plugin id")
        handle = self._plugins.require(song.plugin_id)
        if not handle.can_resolve:
            raise PlaybackUnsupportedError("PLUGIN", song.id, f"plugin {handle.id} cannot resolve")

        try:
            url = await handle.get_media_url(song)
        except PluginFaultError as e:
            logger.warning(
                LogMessages.plugin_fault(plugin_id=handle.id, operation="get_media_url", error=e.message)
            )
            raise ResolutionFailedError("PLUGIN", song.id, e.message) from e
        if not url:
            raise ResolutionFailedError("PLUGIN", song.id, f"plugin {handle.id} returned no url")
        return ResolvedMedia(url=url, via=f"plugin:{handle.id}")

    def _resolve_local(self, song: Song) -> ResolvedMedia:
        if not song.audio_url:
            raise ResolutionFailedError(song.source.value, song.id, "local song has no stored reference")
        return ResolvedMedia(url=song.audio_url, via="local")

    # ---- video variant -------------------------------------------------------

    async def get_mv_url(self, song: Song, credential: str | None = None) -> str | None:
        """Video variant of a song, None when there is none.

        YouTube/Bilibili reuse audio resolution (the stream IS the video).
        NetEase picks the highest bitrate of the MV detail.
        """
        if song.source in (MusicSource.YOUTUBE, MusicSource.BILIBILI):
            try:
                return (await self.resolve(song)).url
            except ResolutionFailedError:
                return None

        if song.source is MusicSource.NETEASE and song.mv_reference_id:
            headers = self._credentials.resolve_headers(credential)
            try:
                payload = await self._netease.get_mv_detail(song.mv_reference_id, headers)
            except ProviderUnavailableError as e:
                logger.warning(f"NetEase MV {song.mv_reference_id} lookup failed: {e}")
                return None
            data = payload.get("data")
            brs = data.get("brs") if isinstance(data, dict) else None
            if not isinstance(brs, dict):
                return None
            candidates = [(int(k), v) for k, v in brs.items() if str(k).isdigit() and v]
            if not candidates:
                return None
            return normalize_cover_url(max(candidates, key=lambda c: c[0])[1])
        return None
