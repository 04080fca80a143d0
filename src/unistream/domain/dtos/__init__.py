"""
Standard Data Transfer Objects for UniStream.

Hey future me - these DTOs are the LINGUA FRANCA between all provider adapters!
NetEase, Bilibili, YouTube mirrors, plugins - every adapter converts its raw JSON
into a Song right at the edge. Nothing behind the adapters ever sees raw payloads.

Nothing here is persisted. Favorites/history are the caller's business.
"""

from dataclasses import dataclass, field
from typing import Any

from unistream.domain.value_objects import FeeTier, MusicSource, ProbeStatus
from unistream.domain.value_objects.normalization import (
    as_text,
    normalize_cover_url,
    parse_duration,
    strip_markup,
)


# Hey future me - (source, id) is the ONLY identity! Two sources can return "the same"
# song with different ids and both are kept. Never dedupe across sources.
@dataclass(frozen=True)
class Song:
    """Unified song record from any source."""

    id: str
    title: str
    artist: str
    album: str
    cover_url: str
    source: MusicSource
    duration_seconds: int = 0  # 0 = unknown
    artist_id: str | None = None
    audio_url: str | None = None  # filled lazily by resolution
    mv_reference_id: str | None = None  # video variant exists (bvid / videoId / MV id)
    is_restricted: bool = False
    fee_tier: FeeTier | None = None
    lyric_payload: str | None = None  # raw timed text (LRC), fetched lazily
    plugin_id: str | None = None  # only for MusicSource.PLUGIN

    @property
    def key(self) -> tuple[MusicSource, str]:
        """Identity key: song ids are unique only within one source."""
        return (self.source, self.id)


@dataclass
class ProviderResult:
    """Transient outcome of ONE provider branch of one aggregation call."""

    source: MusicSource
    provider: str  # "NETEASE", "YOUTUBE", "plugin:kugou", ...
    songs: list[Song] = field(default_factory=list)
    success: bool = True
    elapsed_ms: int = 0
    error: str | None = None


@dataclass
class Artist:
    """Artist header for the artist detail page."""

    id: str
    name: str
    cover_url: str = ""
    description: str | None = None
    song_count: int | None = None


@dataclass
class ArtistDetail:
    """Artist plus their top songs."""

    artist: Artist
    songs: list[Song] = field(default_factory=list)


@dataclass
class Playlist:
    """A remote playlist (tracks are fetched separately via playlist detail)."""

    id: str
    name: str
    description: str | None = None
    cover_url: str = ""
    creator_id: str | None = None
    songs: list[Song] = field(default_factory=list)


@dataclass
class ResolvedMedia:
    """Result of resolve(): what the media element should load."""

    url: str
    lyric: str | None = None
    via: str = ""  # which fallback step produced the url (for logs/debugging)


@dataclass
class DiagnosticResult:
    """One latency probe."""

    name: str
    status: ProbeStatus
    latency_ms: int | None = None
    message: str = ""


@dataclass
class PluginInfo:
    """Public description of an installed plugin."""

    id: str
    name: str
    version: str = "1.0"
    author: str = "Unknown"
    src_url: str | None = None
    can_search: bool = False
    can_resolve: bool = False


@dataclass
class UserStatus:
    """Account check result for a pasted credential."""

    user_id: str
    nickname: str
    avatar_url: str = ""
    is_vip: bool = False
    token: str = ""  # the normalized session token the caller should store


def song_from_mapping(data: dict[str, Any], default_source: MusicSource | None = None) -> Song:
    """Build a Song from a loosely typed mapping (backend responses, plugin output).

    Accepts both camelCase wire names (coverUrl, durationSeconds) and the
    snake_case attribute names. Missing fields become safe defaults.
    """
    def pick(*names: str) -> Any:
        for name in names:
            if name in data and data[name] is not None:
                return data[name]
        return None

    raw_source = pick("source")
    try:
        source = MusicSource(str(raw_source).upper()) if raw_source else default_source
    except ValueError:
        source = default_source
    if source is None:
        source = MusicSource.PLUGIN

    raw_fee = pick("feeTier", "fee_tier")
    try:
        fee_tier = FeeTier(raw_fee) if raw_fee else None
    except ValueError:
        fee_tier = None

    return Song(
        id=as_text(pick("id")),
        title=strip_markup(pick("title", "name")),
        artist=as_text(pick("artist"), "Unknown"),
        album=as_text(pick("album")),
        cover_url=normalize_cover_url(pick("coverUrl", "cover_url", "artwork")),
        source=source,
        duration_seconds=parse_duration(pick("durationSeconds", "duration_seconds", "duration")),
        artist_id=as_text(pick("artistId", "artist_id")) or None,
        audio_url=as_text(pick("audioUrl", "audio_url", "url")) or None,
        mv_reference_id=as_text(pick("mvReferenceId", "mv_reference_id", "mvId")) or None,
        is_restricted=bool(pick("isRestricted", "is_restricted", "isGray")),
        fee_tier=fee_tier,
        lyric_payload=as_text(pick("lyricPayload", "lyric_payload", "lyric")) or None,
        plugin_id=as_text(pick("pluginId", "plugin_id")) or None,
    )


def song_to_mapping(song: Song) -> dict[str, Any]:
    """Wire shape of a Song (camelCase), as handed to plugins and API clients."""
    return {
        "id": song.id,
        "title": song.title,
        "artist": song.artist,
        "artistId": song.artist_id,
        "album": song.album,
        "coverUrl": song.cover_url,
        "source": song.source.value,
        "durationSeconds": song.duration_seconds,
        "audioUrl": song.audio_url,
        "mvReferenceId": song.mv_reference_id,
        "isRestricted": song.is_restricted,
        "feeTier": song.fee_tier.value if song.fee_tier else None,
        "lyricPayload": song.lyric_payload,
        "pluginId": song.plugin_id,
    }


__all__ = [
    "Artist",
    "ArtistDetail",
    "DiagnosticResult",
    "Playlist",
    "PluginInfo",
    "ProviderResult",
    "ResolvedMedia",
    "Song",
    "UserStatus",
    "song_from_mapping",
    "song_to_mapping",
]
