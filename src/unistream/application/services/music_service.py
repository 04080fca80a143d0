"""The service context: one object owning every collaborator.

Hey future me - the old client was a module-level singleton (`export const
musicService = new ...`) with hidden mutable state. Here MusicService is built
ONCE in the app lifespan (tests build their own) and handed to every route via
Depends. It owns:

- the HTTP client pool (closed in close())
- the endpoint pools (Piped, Invidious) and their preferred pointers
- the plugin registry
- the runtime config that configure() mutates

Nothing else in the package keeps state.
"""

import json
import logging
import random
from collections.abc import AsyncIterator, Mapping
from typing import Any

import httpx

from unistream.application.services.credentials_service import (
    CredentialContext,
    extract_session_token,
)
from unistream.application.services.diagnostics_service import DiagnosticsService
from unistream.application.services.relay_service import RelayService, RelayStream
from unistream.application.services.resolver_service import ResolverService
from unistream.application.services.search_service import SearchService
from unistream.config.runtime import RuntimeConfig
from unistream.config.settings import Settings
from unistream.domain.dtos import (
    ArtistDetail,
    DiagnosticResult,
    Playlist,
    PluginInfo,
    ProviderResult,
    ResolvedMedia,
    Song,
    UserStatus,
)
from unistream.domain.exceptions import (
    PlaybackUnsupportedError,
    PluginFaultError,
    ProviderUnavailableError,
    RelayUpstreamError,
    ResolutionFailedError,
    ValidationError,
)
from unistream.domain.value_objects import AudioQuality, MusicSource
from unistream.domain.value_objects.normalization import as_text, normalize_cover_url
from unistream.infrastructure.integrations.backend_client import BackendClient
from unistream.infrastructure.integrations.bilibili_client import BilibiliClient
from unistream.infrastructure.integrations.endpoint_pool import EndpointPool
from unistream.infrastructure.integrations.http_pool import HttpClientPool
from unistream.infrastructure.integrations.netease_client import NeteaseClient
from unistream.infrastructure.integrations.youtube_extractor import YouTubeExtractor
from unistream.infrastructure.integrations.youtube_mirror_client import YouTubeMirrorClient
from unistream.infrastructure.observability.log_messages import LogMessages
from unistream.infrastructure.plugins.loader import load_plugin
from unistream.infrastructure.plugins.registry import PluginRegistry
from unistream.infrastructure.providers.bilibili_provider import BilibiliProvider
from unistream.infrastructure.providers.netease_provider import NeteaseProvider
from unistream.infrastructure.providers.registry import ProviderRegistry
from unistream.infrastructure.providers.youtube_provider import YouTubeProvider

logger = logging.getLogger(__name__)

PLUGIN_DOWNLOAD_TIMEOUT = 10.0


class MusicService:
    """Facade over search, resolution, relay, plugins and diagnostics."""

    def __init__(
        self,
        settings: Settings,
        http: HttpClientPool | None = None,
        extractor: YouTubeExtractor | None = None,
        rng: random.Random | None = None,
    ) -> None:
        """Wire up one service context.

        Args:
            settings: Startup configuration
            http: Client pool to use (a fresh one by default)
            extractor: yt-dlp extractor; by default one is created when
                settings.enable_server_extraction is on
            rng: Random source for the initial mirror pointers
        """
        self.settings = settings
        self.runtime = RuntimeConfig.from_settings(settings)
        self.http = http or HttpClientPool(user_agent=settings.user_agent)

        self.piped_pool = EndpointPool("piped", settings.mirrors.piped_instances, rng=rng)
        self.invidious_pool = EndpointPool(
            "invidious",
            settings.mirrors.invidious_instances,
            override=self.runtime.custom_mirror_url,
            rng=rng,
        )

        self.credentials = CredentialContext(
            app_version=settings.netease.app_version,
            referer=f"{settings.netease.base_url}/",
            forwarded_ip=settings.netease.forwarded_ip,
            user_agent=settings.user_agent,
        )
        self.netease_client = NeteaseClient(
            self.http,
            base_url=settings.netease.base_url,
            search_limit=settings.netease.search_limit,
            timeout=settings.netease.request_timeout,
        )
        self.bilibili_client = BilibiliClient(
            self.http,
            api_base_url=settings.bilibili.api_base_url,
            referer=settings.bilibili.referer,
            timeout=settings.bilibili.request_timeout,
            user_agent=settings.user_agent,
        )
        self.mirror_client = YouTubeMirrorClient(self.http, timeout=settings.mirrors.mirror_timeout)
        self.backend_client = BackendClient(
            self.http,
            timeout=settings.backend.timeout,
            resolve_timeout=settings.backend.resolve_timeout,
        )
        if extractor is None and settings.enable_server_extraction:
            extractor = YouTubeExtractor()
        self.extractor = extractor

        self.plugins = PluginRegistry()
        self.netease = NeteaseProvider(self.netease_client, self.credentials)
        self.providers = ProviderRegistry()
        self.providers.register(self.netease)
        self.providers.register(BilibiliProvider(self.bilibili_client))
        self.providers.register(
            YouTubeProvider(
                self.mirror_client,
                self.backend_client,
                self.piped_pool,
                self.invidious_pool,
                self.runtime,
                result_limit=settings.mirrors.result_limit,
            )
        )

        self.search_service = SearchService(self.providers, self.plugins, self.runtime)
        self.resolver = ResolverService(
            self.netease_client,
            self.credentials,
            self.bilibili_client,
            self.mirror_client,
            self.backend_client,
            self.piped_pool,
            self.invidious_pool,
            self.plugins,
            self.runtime,
            public_base_url=settings.public_base_url,
            extractor=self.extractor,
        )
        self.relay = RelayService(self.http, user_agent=settings.user_agent)
        self.diagnostics = DiagnosticsService(
            self.netease_client,
            self.credentials,
            self.bilibili_client,
            self.mirror_client,
            self.backend_client,
            self.piped_pool,
            self.invidious_pool,
            self.runtime,
            probe_timeout=settings.probe_timeout,
        )

    # ---- search ----------------------------------------------------------------

    def search_stream(self, query: str, credential: str | None = None) -> AsyncIterator[ProviderResult]:
        return self.search_service.search_stream(query, credential)

    async def search(self, query: str, credential: str | None = None) -> list[Song]:
        return await self.search_service.search(query, credential)

    # ---- playback --------------------------------------------------------------

    async def resolve(
        self,
        song: Song,
        quality: AudioQuality = AudioQuality.STANDARD,
        credential: str | None = None,
    ) -> ResolvedMedia:
        return await self.resolver.resolve(song, quality, credential)

    async def get_mv_url(self, song: Song, credential: str | None = None) -> str | None:
        return await self.resolver.get_mv_url(song, credential)

    async def open_relay(
        self,
        target_url: str,
        range_header: str | None = None,
        referer: str | None = None,
    ) -> RelayStream:
        extra = {"Referer": referer} if referer else None
        return await self.relay.open(target_url, range_header=range_header, extra_headers=extra)

    async def open_youtube_stream(self, video_id: str, range_header: str | None = None) -> RelayStream:
        """Extract a YouTube audio stream on this host and relay it.

        Raises:
            PlaybackUnsupportedError: Server extraction is disabled
            ResolutionFailedError: yt-dlp found nothing playable
            RelayUpstreamError: The extracted stream could not be fetched
        """
        if self.extractor is None:
            raise PlaybackUnsupportedError("YOUTUBE", video_id, "server-side extraction is disabled")
        try:
            stream = await self.extractor.extract_audio(video_id)
        except ProviderUnavailableError as e:
            raise ResolutionFailedError("YOUTUBE", video_id, e.message) from e

        headers = {k: v for k, v in stream.headers.items() if k.lower() != "accept-encoding"}
        try:
            return await self.relay.open(stream.url, range_header=range_header, extra_headers=headers)
        except RelayUpstreamError:
            # signed URLs expire, next attempt extracts again
            self.extractor.forget(video_id)
            raise

    # ---- catalog ---------------------------------------------------------------

    async def get_artist_detail(self, artist_id: str, credential: str | None = None) -> ArtistDetail:
        return await self.netease.artist_detail(artist_id, credential)

    async def get_playlist_detail(self, playlist_id: str, credential: str | None = None) -> Playlist:
        return await self.netease.playlist_detail(playlist_id, credential)

    async def get_daily_recommendations(self, credential: str | None = None) -> list[Song]:
        return await self.netease.daily_recommendations(credential)

    async def get_user_playlists(self, uid: str, credential: str | None = None) -> list[Playlist]:
        return await self.netease.user_playlists(uid, credential)

    async def get_user_status(self, raw_credential: str) -> UserStatus | None:
        """Check a pasted credential against the account endpoint.

        Returns:
            UserStatus with the cleaned token, or None when not logged in
        """
        token = extract_session_token(raw_credential) or raw_credential.strip()
        if not token:
            return None
        try:
            payload = await self.netease_client.get_account(self.credentials.token_headers(token))
        except ProviderUnavailableError as e:
            logger.warning(f"Login status check failed: {e}")
            return None

        profile = payload.get("profile")
        if payload.get("code") != 200 or not isinstance(profile, dict):
            return None
        account = payload.get("account") if isinstance(payload.get("account"), dict) else {}
        vip_type = profile.get("vipType") or account.get("vipType") or 0
        return UserStatus(
            user_id=as_text(profile.get("userId")),
            nickname=as_text(profile.get("nickname"), "NetEase user"),
            avatar_url=normalize_cover_url(profile.get("avatarUrl")),
            is_vip=isinstance(vip_type, int) and vip_type > 0,
            token=token,
        )

    # ---- plugins ---------------------------------------------------------------

    def add_plugin(self, source_code: str, src_url: str | None = None) -> PluginInfo:
        """Load and register a plugin (last install wins on the same id).

        Raises:
            PluginFaultError: The source is not a usable plugin
        """
        handle = load_plugin(source_code, src_url=src_url)
        self.plugins.register(handle)
        return handle.info()

    async def add_plugin_from_url(self, url: str) -> PluginInfo:
        """Download plugin source and register it.

        Raises:
            PluginFaultError: Download failed or the source is not a usable plugin
        """
        client = await self.http.get_client()
        try:
            response = await client.get(url, timeout=PLUGIN_DOWNLOAD_TIMEOUT)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise PluginFaultError(url, f"download failed: {e}") from e
        return self.add_plugin(response.text, src_url=url)

    def install_plugin(self, source_code: str) -> bool:
        """Install from source text. False (and a log line) if it is not a plugin."""
        try:
            self.add_plugin(source_code)
        except PluginFaultError as e:
            logger.warning(LogMessages.plugin_fault(plugin_id=e.plugin_id, operation="install", error=e.message))
            return False
        return True

    async def install_plugin_from_url(self, url: str) -> bool:
        """Fetch and install. False (and a log line) on any failure."""
        try:
            await self.add_plugin_from_url(url)
        except PluginFaultError as e:
            logger.warning(LogMessages.plugin_fault(plugin_id=e.plugin_id, operation="install", error=e.message))
            return False
        return True

    async def install_plugins_from_manifest(self, manifest: str | list[Any] | Mapping[str, Any]) -> int:
        """Install every plugin URL listed in a manifest.

        Accepts a JSON list of {"url": ...} entries (or bare URL strings), or an
        object with such a list under "plugins".

        Returns:
            Number of plugins installed

        Raises:
            ValidationError: The manifest is not valid JSON / has no plugin list
        """
        if isinstance(manifest, str):
            try:
                manifest = json.loads(manifest)
            except ValueError as e:
                raise ValidationError(f"Plugin manifest is not valid JSON: {e}") from e

        entries = manifest.get("plugins", []) if isinstance(manifest, Mapping) else manifest
        if not isinstance(entries, list):
            raise ValidationError("Plugin manifest must be a list or contain a 'plugins' list")

        installed = 0
        for entry in entries:
            url = entry.get("url") if isinstance(entry, Mapping) else entry
            if isinstance(url, str) and url and await self.install_plugin_from_url(url):
                installed += 1
        logger.info(f"Plugin manifest: installed {installed} of {len(entries)}")
        return installed

    def list_plugins(self) -> list[PluginInfo]:
        return [handle.info() for handle in self.plugins.all()]

    def remove_plugin(self, plugin_id: str) -> bool:
        return self.plugins.unregister(plugin_id)

    # ---- configuration ---------------------------------------------------------

    def configure(
        self,
        backend_relay_url: str | None = None,
        custom_mirror_url: str | None = None,
        per_provider_timeout_ms: int | Mapping[str, int] | None = None,
    ) -> RuntimeConfig:
        """Change runtime options. None leaves a value alone, "" clears it.

        Args:
            backend_relay_url: Operator relay backend base URL
            custom_mirror_url: Operator Invidious instance (pool override)
            per_provider_timeout_ms: One budget for every provider, or budgets per source

        Returns:
            The updated runtime config

        Raises:
            ValidationError: Malformed URL or negative/unknown timeout entry
        """
        # validate everything first, a rejected request must not leave half of it applied
        backend = _clean_url(backend_relay_url, "backend relay URL") if backend_relay_url is not None else None
        mirror = _clean_url(custom_mirror_url, "custom mirror URL") if custom_mirror_url is not None else None

        default_timeout: int | None = None
        timeout_updates: dict[str, int] = {}
        if isinstance(per_provider_timeout_ms, Mapping):
            for key, value in per_provider_timeout_ms.items():
                timeout_updates[MusicSource.parse(key).value] = _check_timeout(value)
        elif per_provider_timeout_ms is not None:
            default_timeout = _check_timeout(per_provider_timeout_ms)
            timeout_updates = {source.value: default_timeout for source in MusicSource}

        if backend is not None:
            self.runtime.backend_relay_url = backend
        if mirror is not None:
            self.runtime.custom_mirror_url = mirror
            self.invidious_pool.set_override(mirror)
        if default_timeout is not None:
            self.runtime.default_timeout_ms = default_timeout
        self.runtime.provider_timeouts_ms.update(timeout_updates)

        logger.info(
            "Runtime configuration updated",
            extra={
                "backend_relay_url": self.runtime.backend_relay_url,
                "custom_mirror_url": self.runtime.custom_mirror_url,
                "provider_timeouts_ms": self.runtime.provider_timeouts_ms,
            },
        )
        return self.runtime

    # ---- diagnostics / lifecycle ----------------------------------------------

    async def run_diagnostics(self) -> list[DiagnosticResult]:
        return await self.diagnostics.run()

    async def close(self) -> None:
        await self.http.close()


def _clean_url(value: str, label: str) -> str:
    value = value.strip().rstrip("/")
    if value and not value.startswith(("http://", "https://")):
        raise ValidationError(f"Invalid {label}: must start with http:// or https://")
    return value


def _check_timeout(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"Provider timeout must be a positive integer (ms), got {value!r}")
    return value
