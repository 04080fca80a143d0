"""NetEase catalog endpoints (artist, playlist, recommendations, account)."""

import logging

from fastapi import APIRouter, Depends, Query

from unistream.api.dependencies import get_credential, get_music_service
from unistream.api.schemas import (
    ArtistDetailResponse,
    LoginStatusResponse,
    PlaylistListResponse,
    PlaylistSchema,
    SearchResponse,
    SongSchema,
)
from unistream.application.services.music_service import MusicService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Browse"])


@router.get("/artists/{artist_id}", response_model=ArtistDetailResponse)
async def artist_detail(
    artist_id: str,
    credential: str | None = Depends(get_credential),
    service: MusicService = Depends(get_music_service),
) -> ArtistDetailResponse:
    """Artist header plus top songs. Unknown artists come back with an empty song list."""
    return ArtistDetailResponse.from_dto(await service.get_artist_detail(artist_id, credential))


@router.get("/playlists/{playlist_id}", response_model=PlaylistSchema)
async def playlist_detail(
    playlist_id: str,
    credential: str | None = Depends(get_credential),
    service: MusicService = Depends(get_music_service),
) -> PlaylistSchema:
    return PlaylistSchema.from_dto(await service.get_playlist_detail(playlist_id, credential))


@router.get("/recommendations/daily", response_model=SearchResponse)
async def daily_recommendations(
    credential: str | None = Depends(get_credential),
    service: MusicService = Depends(get_music_service),
) -> SearchResponse:
    """Daily picks of the logged-in account (empty when anonymous)."""
    songs = await service.get_daily_recommendations(credential)
    return SearchResponse(songs=[SongSchema.from_dto(s) for s in songs])


@router.get("/users/{uid}/playlists", response_model=PlaylistListResponse)
async def user_playlists(
    uid: str,
    credential: str | None = Depends(get_credential),
    service: MusicService = Depends(get_music_service),
) -> PlaylistListResponse:
    playlists = await service.get_user_playlists(uid, credential)
    return PlaylistListResponse(playlists=[PlaylistSchema.from_dto(p) for p in playlists])


# Hey future me - the user pastes whatever their browser devtools showed (full cookie
# header, just MUSIC_U=..., or the bare token). We answer with the CLEANED token
# so the client stores that and not the paste.
@router.get("/login/status", response_model=LoginStatusResponse)
async def login_status(
    cookie: str = Query(..., min_length=1, description="Pasted credential"),
    service: MusicService = Depends(get_music_service),
) -> LoginStatusResponse:
    return LoginStatusResponse.from_dto(await service.get_user_status(cookie))
