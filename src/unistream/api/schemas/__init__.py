"""API request/response schemas."""

from unistream.api.schemas.music import (
    ArtistDetailResponse,
    DiagnosticSchema,
    DiagnosticsResponse,
    HealthResponse,
    LoginStatusResponse,
    MvResponse,
    PlaylistListResponse,
    PlaylistSchema,
    PluginManifestResponse,
    PluginSchema,
    PluginSourceRequest,
    PluginUrlRequest,
    ProviderBatchSchema,
    ResolveResponse,
    SearchResponse,
    SettingsResponse,
    SettingsUpdateRequest,
    SongSchema,
)

__all__ = [
    "ArtistDetailResponse",
    "DiagnosticSchema",
    "DiagnosticsResponse",
    "HealthResponse",
    "LoginStatusResponse",
    "MvResponse",
    "PlaylistListResponse",
    "PlaylistSchema",
    "PluginManifestResponse",
    "PluginSchema",
    "PluginSourceRequest",
    "PluginUrlRequest",
    "ProviderBatchSchema",
    "ResolveResponse",
    "SearchResponse",
    "SettingsResponse",
    "SettingsUpdateRequest",
    "SongSchema",
]
