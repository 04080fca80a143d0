"""API schemas for search, playback, catalog, plugins and settings.

Hey future me - the wire format is camelCase (coverUrl, durationSeconds) because
the player clients were written against the old JS backend. The models use
aliases + populate_by_name, so Python code stays snake_case and
`model_dump(by_alias=True)` produces what the clients expect. FastAPI uses the
alias on output automatically (response_model_by_alias defaults to True).
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from unistream.config.runtime import RuntimeConfig
from unistream.domain.dtos import (
    ArtistDetail,
    DiagnosticResult,
    Playlist,
    PluginInfo,
    ProviderResult,
    Song,
    UserStatus,
)


class CamelModel(BaseModel):
    """Base model with camelCase aliases on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# SONGS / SEARCH
# =============================================================================


class SongSchema(CamelModel):
    """Unified song as returned by every endpoint."""

    id: str = Field(..., description="Source-specific song ID")
    title: str
    artist: str
    album: str = ""
    cover_url: str = ""
    source: str = Field(..., description="NETEASE, YOUTUBE, BILIBILI, LOCAL or PLUGIN")
    duration_seconds: int = 0
    artist_id: str | None = None
    audio_url: str | None = None
    mv_reference_id: str | None = None
    is_restricted: bool = False
    fee_tier: str | None = None
    lyric_payload: str | None = None
    plugin_id: str | None = None

    @classmethod
    def from_dto(cls, song: Song) -> "SongSchema":
        return cls(
            id=song.id,
            title=song.title,
            artist=song.artist,
            album=song.album,
            cover_url=song.cover_url,
            source=song.source.value,
            duration_seconds=song.duration_seconds,
            artist_id=song.artist_id,
            audio_url=song.audio_url,
            mv_reference_id=song.mv_reference_id,
            is_restricted=song.is_restricted,
            fee_tier=song.fee_tier.value if song.fee_tier else None,
            lyric_payload=song.lyric_payload,
            plugin_id=song.plugin_id,
        )


class SearchResponse(CamelModel):
    """Batch search response: {songs: [...]}."""

    songs: list[SongSchema] = Field(default_factory=list)


class ProviderBatchSchema(CamelModel):
    """One streamed search batch (one provider arrival)."""

    source: str
    provider: str
    songs: list[SongSchema] = Field(default_factory=list)
    success: bool = True
    elapsed_ms: int = 0
    error: str | None = None

    @classmethod
    def from_dto(cls, result: ProviderResult) -> "ProviderBatchSchema":
        return cls(
            source=result.source.value,
            provider=result.provider,
            songs=[SongSchema.from_dto(s) for s in result.songs],
            success=result.success,
            elapsed_ms=result.elapsed_ms,
            error=result.error,
        )


# =============================================================================
# PLAYBACK
# =============================================================================


class ResolveResponse(CamelModel):
    """Playable URL (+ lyric for NetEase)."""

    url: str
    lyric: str | None = None


class MvResponse(CamelModel):
    """Video variant URL, null when the song has none."""

    url: str | None = None


# =============================================================================
# CATALOG
# =============================================================================


class ArtistSchema(CamelModel):
    id: str
    name: str
    cover_url: str = ""
    description: str | None = None
    song_count: int | None = None


class ArtistDetailResponse(CamelModel):
    artist: ArtistSchema
    songs: list[SongSchema] = Field(default_factory=list)

    @classmethod
    def from_dto(cls, detail: ArtistDetail) -> "ArtistDetailResponse":
        a = detail.artist
        return cls(
            artist=ArtistSchema(
                id=a.id,
                name=a.name,
                cover_url=a.cover_url,
                description=a.description,
                song_count=a.song_count,
            ),
            songs=[SongSchema.from_dto(s) for s in detail.songs],
        )


class PlaylistSchema(CamelModel):
    id: str
    name: str
    description: str | None = None
    cover_url: str = ""
    creator_id: str | None = None
    songs: list[SongSchema] = Field(default_factory=list)

    @classmethod
    def from_dto(cls, playlist: Playlist) -> "PlaylistSchema":
        return cls(
            id=playlist.id,
            name=playlist.name,
            description=playlist.description,
            cover_url=playlist.cover_url,
            creator_id=playlist.creator_id,
            songs=[SongSchema.from_dto(s) for s in playlist.songs],
        )


class PlaylistListResponse(CamelModel):
    playlists: list[PlaylistSchema] = Field(default_factory=list)


class LoginStatusResponse(CamelModel):
    """Credential check. logged_in=False carries no user fields."""

    logged_in: bool
    user_id: str | None = None
    nickname: str | None = None
    avatar_url: str | None = None
    is_vip: bool = False
    token: str | None = None

    @classmethod
    def from_dto(cls, status: UserStatus | None) -> "LoginStatusResponse":
        if status is None:
            return cls(logged_in=False)
        return cls(
            logged_in=True,
            user_id=status.user_id,
            nickname=status.nickname,
            avatar_url=status.avatar_url,
            is_vip=status.is_vip,
            token=status.token,
        )


# =============================================================================
# PLUGINS
# =============================================================================


class PluginSchema(CamelModel):
    id: str
    name: str
    version: str = "1.0"
    author: str = "Unknown"
    src_url: str | None = None
    can_search: bool = False
    can_resolve: bool = False

    @classmethod
    def from_dto(cls, info: PluginInfo) -> "PluginSchema":
        return cls(
            id=info.id,
            name=info.name,
            version=info.version,
            author=info.author,
            src_url=info.src_url,
            can_search=info.can_search,
            can_resolve=info.can_resolve,
        )


class PluginSourceRequest(CamelModel):
    source: str = Field(..., min_length=1, description="Python plugin source text")


class PluginUrlRequest(CamelModel):
    url: str = Field(..., min_length=1, description="URL of the plugin source")


class PluginManifestResponse(CamelModel):
    installed: int


# =============================================================================
# SETTINGS / DIAGNOSTICS
# =============================================================================


class SettingsUpdateRequest(CamelModel):
    """Runtime configuration change. Omitted field = unchanged, "" = cleared."""

    backend_relay_url: str | None = None
    custom_mirror_url: str | None = None
    per_provider_timeout_ms: int | dict[str, int] | None = Field(
        default=None,
        description="One budget in ms for every provider, or a per-source mapping",
    )


class SettingsResponse(CamelModel):
    backend_relay_url: str = ""
    custom_mirror_url: str = ""
    provider_timeouts_ms: dict[str, int] = Field(default_factory=dict)
    default_timeout_ms: int = 0

    @classmethod
    def from_runtime(cls, runtime: RuntimeConfig) -> "SettingsResponse":
        return cls(
            backend_relay_url=runtime.backend_relay_url,
            custom_mirror_url=runtime.custom_mirror_url,
            provider_timeouts_ms=dict(runtime.provider_timeouts_ms),
            default_timeout_ms=runtime.default_timeout_ms,
        )


class DiagnosticSchema(CamelModel):
    name: str
    status: str
    latency_ms: int | None = None
    message: str = ""

    @classmethod
    def from_dto(cls, result: DiagnosticResult) -> "DiagnosticSchema":
        return cls(
            name=result.name,
            status=result.status.value,
            latency_ms=result.latency_ms,
            message=result.message,
        )


class DiagnosticsResponse(CamelModel):
    results: list[DiagnosticSchema] = Field(default_factory=list)


class HealthResponse(CamelModel):
    status: str = "healthy"
    version: str
    timestamp: str
