"""Tests for per-source playback resolution."""

import random
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from unistream.application.services.credentials_service import CredentialContext
from unistream.application.services.resolver_service import ResolverService
from unistream.config.runtime import RuntimeConfig
from unistream.domain.dtos import Song
from unistream.domain.exceptions import (
    PaywallRequiredError,
    PlaybackUnsupportedError,
    ProviderUnavailableError,
    ResolutionFailedError,
)
from unistream.domain.value_objects import AudioQuality, FeeTier, MusicSource
from unistream.infrastructure.integrations.backend_client import BackendClient
from unistream.infrastructure.integrations.bilibili_client import BilibiliClient
from unistream.infrastructure.integrations.endpoint_pool import EndpointPool
from unistream.infrastructure.integrations.netease_client import NeteaseClient
from unistream.infrastructure.integrations.youtube_extractor import YouTubeExtractor
from unistream.infrastructure.integrations.youtube_mirror_client import YouTubeMirrorClient
from unistream.infrastructure.plugins.loader import PluginHandle
from unistream.infrastructure.plugins.registry import PluginRegistry

BASE = "http://unistream.test"


def _song(source: MusicSource, song_id: str = "1", **kwargs) -> Song:
    return Song(id=song_id, title="T", artist="A", album="", cover_url="", source=source, **kwargs)


def _url_payload(url: str | None, code: int = 200, **extra) -> dict:
    return {"code": 200, "data": [{"id": 1, "url": url, "code": code, **extra}]}


@pytest.fixture
def deps(rng: random.Random) -> SimpleNamespace:
    bilibili = AsyncMock(spec=BilibiliClient)
    bilibili.referer = "https://www.bilibili.com/"
    mirrors = AsyncMock(spec=YouTubeMirrorClient)
    mirrors.invidious_latest_version_url = YouTubeMirrorClient.invidious_latest_version_url
    return SimpleNamespace(
        netease=AsyncMock(spec=NeteaseClient),
        bilibili=bilibili,
        mirrors=mirrors,
        backend=AsyncMock(spec=BackendClient),
        piped=EndpointPool("piped", ["https://piped-a.test", "https://piped-b.test"], rng=rng),
        invidious=EndpointPool("invidious", ["https://inv-a.test", "https://inv-b.test"], rng=rng),
        plugins=PluginRegistry(),
        runtime=RuntimeConfig(),
    )


def _resolver(deps: SimpleNamespace, extractor: YouTubeExtractor | None = None) -> ResolverService:
    return ResolverService(
        deps.netease,
        CredentialContext(),
        deps.bilibili,
        deps.mirrors,
        deps.backend,
        deps.piped,
        deps.invidious,
        deps.plugins,
        deps.runtime,
        public_base_url=BASE,
        extractor=extractor,
    )


class TestNeteaseResolution:
    async def test_negotiates_down_to_available_tier(self, deps: SimpleNamespace) -> None:
        deps.netease.get_song_url.side_effect = [
            _url_payload(None, code=404, fee=0),
            _url_payload("http://m8.music.126.net/a.mp3"),
        ]
        deps.netease.get_lyric.return_value = {"lrc": {"lyric": "[00:01.00]hello"}}

        media = await _resolver(deps).resolve(_song(MusicSource.NETEASE, "186016"), AudioQuality.LOSSLESS)

        assert media.url == "https://m8.music.126.net/a.mp3"
        assert media.lyric == "[00:01.00]hello"
        assert media.via == "netease:exhigh"
        first, second = deps.netease.get_song_url.await_args_list
        assert first.args[:3] == ("186016", 999000, "lossless")
        assert second.args[:3] == ("186016", 320000, "exhigh")

    async def test_trial_preview_is_paywalled_immediately(self, deps: SimpleNamespace) -> None:
        deps.netease.get_song_url.return_value = _url_payload(
            "http://m8.music.126.net/preview.mp3", freeTrialInfo={"start": 0, "end": 30}
        )

        with pytest.raises(PaywallRequiredError, match="trial"):
            await _resolver(deps).resolve(_song(MusicSource.NETEASE), AudioQuality.LOSSLESS)

        assert deps.netease.get_song_url.await_count == 1

    async def test_paid_song_without_url_is_paywalled(self, deps: SimpleNamespace) -> None:
        deps.netease.get_song_url.return_value = _url_payload(None, fee=1)

        with pytest.raises(PaywallRequiredError) as exc_info:
            await _resolver(deps).resolve(_song(MusicSource.NETEASE))

        assert exc_info.value.reason == "subscription required"

    async def test_fee_from_search_result_is_used_when_url_endpoint_is_silent(
        self, deps: SimpleNamespace
    ) -> None:
        deps.netease.get_song_url.return_value = {"code": 200, "data": [{"url": None, "code": 404}]}

        with pytest.raises(PaywallRequiredError):
            await _resolver(deps).resolve(_song(MusicSource.NETEASE, fee_tier=FeeTier.SUBSCRIPTION))

    async def test_free_song_without_url_fails(self, deps: SimpleNamespace) -> None:
        deps.netease.get_song_url.return_value = _url_payload(None, code=404, fee=0)

        with pytest.raises(ResolutionFailedError) as exc_info:
            await _resolver(deps).resolve(_song(MusicSource.NETEASE))

        assert type(exc_info.value) is ResolutionFailedError

    async def test_network_failure_becomes_resolution_failure(self, deps: SimpleNamespace) -> None:
        deps.netease.get_song_url.side_effect = ProviderUnavailableError("netease", "timeout")

        with pytest.raises(ResolutionFailedError):
            await _resolver(deps).resolve(_song(MusicSource.NETEASE))

    async def test_lyric_failure_is_tolerated(self, deps: SimpleNamespace) -> None:
        deps.netease.get_song_url.return_value = _url_payload("https://m8.music.126.net/a.mp3")
        deps.netease.get_lyric.side_effect = ProviderUnavailableError("netease", "502")

        media = await _resolver(deps).resolve(_song(MusicSource.NETEASE))

        assert media.url == "https://m8.music.126.net/a.mp3"
        assert media.lyric is None

    async def test_credential_becomes_cookie(self, deps: SimpleNamespace) -> None:
        deps.netease.get_song_url.return_value = _url_payload("https://m8.music.126.net/a.mp3")
        deps.netease.get_lyric.return_value = {}

        await _resolver(deps).resolve(_song(MusicSource.NETEASE), credential="MUSIC_U=abcdef;")

        headers = deps.netease.get_song_url.await_args.args[3]
        assert "MUSIC_U=abcdef" in headers["Cookie"]


class TestBilibiliResolution:
    async def test_media_url_is_wrapped_in_relay(self, deps: SimpleNamespace) -> None:
        deps.bilibili.get_cid.return_value = "279786"
        deps.bilibili.get_play_url.return_value = "https://upos-sz.bilivideo.test/a.m4s"

        media = await _resolver(deps).resolve(_song(MusicSource.BILIBILI, "BV1xx411c7mD"))

        assert media.url.startswith(f"{BASE}/api/relay?url=https%3A%2F%2Fupos-sz.bilivideo.test")
        assert "referer=https%3A%2F%2Fwww.bilibili.com%2F" in media.url
        deps.bilibili.get_play_url.assert_awaited_once_with("BV1xx411c7mD", "279786")

    async def test_backend_is_tried_first(self, deps: SimpleNamespace) -> None:
        deps.runtime.backend_relay_url = "https://relay.test"
        deps.backend.resolve.return_value = "https://relay.test/stream/BV1"

        media = await _resolver(deps).resolve(_song(MusicSource.BILIBILI, "BV1"))

        assert media.url == "https://relay.test/stream/BV1"
        assert media.via == "backend"
        deps.bilibili.get_cid.assert_not_awaited()

    async def test_missing_cid_fails(self, deps: SimpleNamespace) -> None:
        deps.bilibili.get_cid.return_value = None

        with pytest.raises(ResolutionFailedError):
            await _resolver(deps).resolve(_song(MusicSource.BILIBILI, "BV1"))


class TestYouTubeResolution:
    def test_chain_order(self, deps: SimpleNamespace) -> None:
        deps.runtime.backend_relay_url = "https://relay.test"
        resolver = _resolver(deps, extractor=AsyncMock(spec=YouTubeExtractor))

        names = [step.name for step in resolver.build_youtube_chain("dQw4w9WgXcQ")]

        assert names == [
            "backend",
            "yt-dlp",
            "piped:https://piped-a.test",
            "piped:https://piped-b.test",
            "invidious:latest_version",
        ]

    async def test_server_extraction_points_at_own_play_endpoint(self, deps: SimpleNamespace) -> None:
        extractor = AsyncMock(spec=YouTubeExtractor)

        media = await _resolver(deps, extractor).resolve(_song(MusicSource.YOUTUBE, "dQw4w9WgXcQ"))

        assert media.url == f"{BASE}/api/yt/play?id=dQw4w9WgXcQ"
        extractor.extract_audio.assert_awaited_once_with("dQw4w9WgXcQ")
        deps.mirrors.piped_audio_url.assert_not_awaited()

    async def test_failed_mirror_rotates_pool(self, deps: SimpleNamespace) -> None:
        deps.mirrors.piped_audio_url.side_effect = [
            ProviderUnavailableError("piped", "502"),
            "https://pipedproxy-b.test/videoplayback?id=1",
        ]

        media = await _resolver(deps).resolve(_song(MusicSource.YOUTUBE, "vid"))

        assert media.url == "https://pipedproxy-b.test/videoplayback?id=1"
        assert media.via == "piped:https://piped-b.test"
        assert deps.piped.preferred == "https://piped-b.test"

    async def test_latest_version_is_last_resort(self, deps: SimpleNamespace) -> None:
        deps.mirrors.piped_audio_url.side_effect = ProviderUnavailableError("piped", "down")

        media = await _resolver(deps).resolve(_song(MusicSource.YOUTUBE, "vid"))

        assert media.via == "invidious:latest_version"
        assert media.url == "https://inv-a.test/latest_version?id=vid&itag=18&local=true"

    async def test_custom_mirror_wins_for_latest_version(self, deps: SimpleNamespace) -> None:
        deps.invidious.set_override("https://my-invidious.test")
        deps.mirrors.piped_audio_url.side_effect = ProviderUnavailableError("piped", "down")

        media = await _resolver(deps).resolve(_song(MusicSource.YOUTUBE, "vid"))

        assert media.url.startswith("https://my-invidious.test/latest_version?")


class TestRepeatedResolution:
    async def test_bilibili_twice_targets_the_same_media(self, deps: SimpleNamespace) -> None:
        deps.bilibili.get_cid.return_value = "279786"
        deps.bilibili.get_play_url.return_value = "https://upos-sz.bilivideo.test/a.m4s"
        resolver = _resolver(deps)
        song = _song(MusicSource.BILIBILI, "BV1xx411c7mD")

        first = await resolver.resolve(song, AudioQuality.EXHIGH)
        second = await resolver.resolve(song, AudioQuality.EXHIGH)

        assert first.url == second.url

    async def test_youtube_twice_targets_the_same_media_after_rotation(self, deps: SimpleNamespace) -> None:
        async def piped_audio_url(instance: str, video_id: str, **kwargs) -> str:
            if instance == "https://piped-a.test":
                raise ProviderUnavailableError("piped", "502")
            return f"https://pipedproxy.test/videoplayback?id={video_id}"

        deps.mirrors.piped_audio_url.side_effect = piped_audio_url
        resolver = _resolver(deps)
        song = _song(MusicSource.YOUTUBE, "dQw4w9WgXcQ")

        first = await resolver.resolve(song, AudioQuality.STANDARD)
        second = await resolver.resolve(song, AudioQuality.STANDARD)

        assert first.url == second.url == "https://pipedproxy.test/videoplayback?id=dQw4w9WgXcQ"
        # the second call starts at the mirror that worked
        assert deps.mirrors.piped_audio_url.await_count == 3


class TestPluginAndLocalResolution:
    async def test_plugin_url(self, deps: SimpleNamespace) -> None:
        async def get_media_url(song: dict) -> str:
            return f"https://cdn.test/{song['id']}.mp3"

        deps.plugins.register(PluginHandle("kugou", "KuGou", get_media_url=get_media_url))

        media = await _resolver(deps).resolve(_song(MusicSource.PLUGIN, "k1", plugin_id="kugou"))

        assert media.url == "https://cdn.test/k1.mp3"
        assert media.via == "plugin:kugou"

    async def test_plugin_without_resolver_is_unsupported(self, deps: SimpleNamespace) -> None:
        async def search(query: str) -> list:
            return []

        deps.plugins.register(PluginHandle("searchonly", "S", search=search))

        with pytest.raises(PlaybackUnsupportedError):
            await _resolver(deps).resolve(_song(MusicSource.PLUGIN, "k1", plugin_id="searchonly"))

    @pytest.mark.parametrize("plugin_id", [None, "not-installed"])
    async def test_unknown_plugin_is_unsupported(self, deps: SimpleNamespace, plugin_id: str | None) -> None:
        with pytest.raises(PlaybackUnsupportedError):
            await _resolver(deps).resolve(_song(MusicSource.PLUGIN, "k1", plugin_id=plugin_id))

    async def test_plugin_fault_becomes_resolution_failure(self, deps: SimpleNamespace) -> None:
        async def get_media_url(song: dict) -> str:
            raise KeyError("url")

        deps.plugins.register(PluginHandle("broken", "B", get_media_url=get_media_url))

        with pytest.raises(ResolutionFailedError) as exc_info:
            await _resolver(deps).resolve(_song(MusicSource.PLUGIN, "k1", plugin_id="broken"))

        assert not isinstance(exc_info.value, PlaybackUnsupportedError)

    async def test_plugin_without_answer_fails(self, deps: SimpleNamespace) -> None:
        async def get_media_url(song: dict) -> None:
            return None

        deps.plugins.register(PluginHandle("empty", "E", get_media_url=get_media_url))

        with pytest.raises(ResolutionFailedError):
            await _resolver(deps).resolve(_song(MusicSource.PLUGIN, "k1", plugin_id="empty"))

    async def test_local_is_identity(self, deps: SimpleNamespace) -> None:
        song = _song(MusicSource.LOCAL, "file-1", audio_url="blob:local/abc")

        media = await _resolver(deps).resolve(song)

        assert media.url == "blob:local/abc"

    async def test_local_without_reference_fails(self, deps: SimpleNamespace) -> None:
        with pytest.raises(ResolutionFailedError):
            await _resolver(deps).resolve(_song(MusicSource.LOCAL, "file-1"))


class TestMvUrl:
    async def test_netease_picks_highest_bitrate(self, deps: SimpleNamespace) -> None:
        deps.netease.get_mv_detail.return_value = {
            "code": 200,
            "data": {"brs": {"240": "http://vodkgeyttp8.vod.126.net/240.mp4", "1080": "http://vodkgeyttp8.vod.126.net/1080.mp4"}},
        }

        url = await _resolver(deps).get_mv_url(_song(MusicSource.NETEASE, mv_reference_id="5436712"))

        assert url == "https://vodkgeyttp8.vod.126.net/1080.mp4"

    async def test_netease_without_mv(self, deps: SimpleNamespace) -> None:
        assert await _resolver(deps).get_mv_url(_song(MusicSource.NETEASE)) is None
        deps.netease.get_mv_detail.assert_not_awaited()

    async def test_youtube_reuses_audio_resolution(self, deps: SimpleNamespace) -> None:
        deps.mirrors.piped_audio_url.return_value = "https://pipedproxy.test/v"

        url = await _resolver(deps).get_mv_url(_song(MusicSource.YOUTUBE, "vid"))

        assert url == "https://pipedproxy.test/v"
