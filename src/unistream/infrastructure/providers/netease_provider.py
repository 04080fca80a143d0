"""NetEase Cloud Music provider adapter.

Maps NetEase song objects (both the `ar`/`al`/`dt` shape of cloudsearch and the
older `artists`/`album`/`duration` shape) into Song DTOs. Detail lookups
(artist, playlist, daily picks, user playlists) follow the same fail-soft
contract as search: any failure gives an empty result plus a log line.
"""

import logging
from typing import Any

from unistream.application.services.credentials_service import CredentialContext
from unistream.domain.dtos import Artist, ArtistDetail, Playlist, Song
from unistream.domain.ports.provider import IProviderAdapter
from unistream.domain.value_objects import MusicSource
from unistream.domain.value_objects.normalization import (
    as_text,
    map_netease_fee,
    millis_to_seconds,
    normalize_cover_url,
    strip_markup,
)
from unistream.infrastructure.integrations.netease_client import NeteaseClient
from unistream.infrastructure.observability.log_messages import LogMessages

logger = logging.getLogger(__name__)


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def map_netease_song(item: Any) -> Song | None:
    """Map one NetEase song object. Returns None for items without an id."""
    if not isinstance(item, dict) or item.get("id") in (None, ""):
        return None

    artists = [a for a in _as_list(item.get("ar") or item.get("artists")) if isinstance(a, dict)]
    artist_names = [as_text(a.get("name")) for a in artists if a.get("name")]
    album = _as_dict(item.get("al") or item.get("album"))
    mv = item.get("mv") or item.get("mvid")

    # Hey future me - privilege.st < 0 means "greyed out" in the official client
    # (no copyright in this region). The song still shows up, it just won't play.
    try:
        restricted = int(_as_dict(item.get("privilege")).get("st", 0)) < 0
    except (TypeError, ValueError):
        restricted = False

    return Song(
        id=as_text(item.get("id")),
        title=strip_markup(item.get("name")),
        artist="/".join(artist_names) or "Unknown",
        artist_id=as_text(artists[0].get("id")) or None if artists else None,
        album=as_text(album.get("name")),
        cover_url=normalize_cover_url(album.get("picUrl")),
        source=MusicSource.NETEASE,
        duration_seconds=millis_to_seconds(item.get("dt", item.get("duration"))),
        mv_reference_id=as_text(mv) or None if mv else None,
        is_restricted=restricted,
        fee_tier=map_netease_fee(item.get("fee")),
    )


def map_netease_songs(items: Any) -> list[Song]:
    """Map a list of song objects, dropping unusable entries, keeping order."""
    songs = []
    for item in _as_list(items):
        song = map_netease_song(item)
        if song is not None:
            songs.append(song)
    return songs


def map_netease_playlist(item: dict[str, Any]) -> Playlist:
    creator = _as_dict(item.get("creator"))
    return Playlist(
        id=as_text(item.get("id")),
        name=as_text(item.get("name"), "Untitled"),
        description=item.get("description") if isinstance(item.get("description"), str) else None,
        cover_url=normalize_cover_url(item.get("coverImgUrl")),
        creator_id=as_text(creator.get("userId")) or None,
        songs=map_netease_songs(item.get("tracks")),
    )


class NeteaseProvider(IProviderAdapter):
    """Search and catalog lookups against NetEase Cloud Music."""

    def __init__(self, client: NeteaseClient, credentials: CredentialContext) -> None:
        self._client = client
        self._credentials = credentials

    @property
    def source(self) -> MusicSource:
        return MusicSource.NETEASE

    async def search(
        self,
        query: str,
        credential: str | None = None,
        timeout: float | None = None,
    ) -> list[Song]:
        headers = self._credentials.resolve_headers(credential)
        try:
            payload = await self._client.search(query, headers, timeout=timeout)
            result = _as_dict(payload.get("result"))
            return map_netease_songs(result.get("songs"))
        except Exception as e:
            logger.warning(LogMessages.provider_failed(provider="NETEASE", query=query, error=str(e)))
            return []

    async def artist_detail(self, artist_id: str, credential: str | None = None) -> ArtistDetail:
        """Artist header plus top songs. Unknown artist on failure."""
        headers = self._credentials.resolve_headers(credential)
        try:
            payload = await self._client.get_artist_top_songs(artist_id, headers)
            if payload.get("code") == 200:
                data = _as_dict(payload.get("artist"))
                song_count = data.get("musicSize")
                artist = Artist(
                    id=as_text(data.get("id")) or artist_id,
                    name=as_text(data.get("name"), "Unknown"),
                    cover_url=normalize_cover_url(data.get("picUrl")),
                    description=data.get("briefDesc") if isinstance(data.get("briefDesc"), str) else None,
                    song_count=song_count if isinstance(song_count, int) else None,
                )
                return ArtistDetail(artist=artist, songs=map_netease_songs(payload.get("songs")))
            logger.warning(f"NetEase artist {artist_id} lookup returned code {payload.get('code')}")
        except Exception as e:
            logger.warning(f"NetEase artist {artist_id} lookup failed: {e}")
        return ArtistDetail(artist=Artist(id=artist_id, name="Unknown"))

    async def playlist_detail(self, playlist_id: str, credential: str | None = None) -> Playlist:
        """Playlist with up to 1000 tracks. Empty playlist on failure."""
        headers = self._credentials.resolve_headers(credential)
        try:
            payload = await self._client.get_playlist_detail(playlist_id, headers)
            data = payload.get("playlist")
            if isinstance(data, dict):
                playlist = map_netease_playlist(data)
                playlist.id = playlist.id or playlist_id
                return playlist
            logger.warning(f"NetEase playlist {playlist_id} has no playlist object")
        except Exception as e:
            logger.warning(f"NetEase playlist {playlist_id} lookup failed: {e}")
        return Playlist(id=playlist_id, name="Unknown")

    async def daily_recommendations(self, credential: str | None = None) -> list[Song]:
        """Daily picks of the logged-in account (guests get nothing)."""
        headers = self._credentials.resolve_headers(credential)
        try:
            payload = await self._client.get_daily_recommendations(headers)
            if payload.get("code") == 200:
                return map_netease_songs(_as_dict(payload.get("data")).get("dailySongs"))
            logger.info(f"NetEase daily recommendations unavailable (code {payload.get('code')})")
        except Exception as e:
            logger.warning(f"NetEase daily recommendations failed: {e}")
        return []

    async def user_playlists(self, uid: str, credential: str | None = None) -> list[Playlist]:
        """Playlists created or subscribed by account `uid` (tracks not included)."""
        headers = self._credentials.resolve_headers(credential)
        try:
            payload = await self._client.get_user_playlists(uid, headers)
            if payload.get("code") == 200:
                return [
                    map_netease_playlist(item)
                    for item in _as_list(payload.get("playlist"))
                    if isinstance(item, dict) and item.get("id") is not None
                ]
            logger.info(f"NetEase playlists of user {uid} unavailable (code {payload.get('code')})")
        except Exception as e:
            logger.warning(f"NetEase playlists of user {uid} failed: {e}")
        return []
