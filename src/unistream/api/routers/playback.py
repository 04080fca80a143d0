"""Playback endpoints: resolve, video variant, server-side YouTube audio.

Hey future me - the player only ever sends (id, source) plus hints. We rebuild a
minimal Song from the query string; resolution needs nothing more than the
identity (and pluginId for plugin songs, audioUrl for LOCAL songs).
"""

import logging

from fastapi import APIRouter, Depends, Header, Query
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from unistream.api.dependencies import get_credential, get_music_service
from unistream.api.schemas import MvResponse, ResolveResponse
from unistream.application.services.music_service import MusicService
from unistream.domain.dtos import Song
from unistream.domain.value_objects import AudioQuality, MusicSource

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Playback"])


def _song_ref(
    song_id: str,
    source: str,
    plugin_id: str | None = None,
    audio_url: str | None = None,
    mv_id: str | None = None,
) -> Song:
    return Song(
        id=song_id,
        title="",
        artist="",
        album="",
        cover_url="",
        source=MusicSource.parse(source),
        plugin_id=plugin_id or None,
        audio_url=audio_url or None,
        mv_reference_id=mv_id or None,
    )


@router.get("/resolve", response_model=ResolveResponse, response_model_exclude_none=True)
async def resolve(
    song_id: str = Query(..., alias="id", min_length=1, description="Source-specific song ID"),
    source: str = Query(..., description="NETEASE, YOUTUBE, BILIBILI, LOCAL or PLUGIN"),
    quality: str | None = Query(None, description="standard, exhigh or lossless"),
    plugin_id: str | None = Query(None, alias="pluginId"),
    audio_url: str | None = Query(None, alias="audioUrl", description="Stored reference (LOCAL)"),
    credential: str | None = Depends(get_credential),
    service: MusicService = Depends(get_music_service),
) -> ResolveResponse:
    """Resolve a playable URL for one song.

    Raises:
        PaywallRequiredError: 402, the song needs a subscription
        PlaybackUnsupportedError: 422, the source cannot play this song at all
        ResolutionFailedError: 404, every fallback failed
    """
    song = _song_ref(song_id, source, plugin_id=plugin_id, audio_url=audio_url)
    media = await service.resolve(song, AudioQuality.parse(quality), credential)
    logger.debug(f"Resolved {song.source.value}:{song.id} via {media.via}")
    return ResolveResponse(url=media.url, lyric=media.lyric)


# Alias for clients of the original backend (GET /url?id=&source=)
router.add_api_route(
    "/url",
    resolve,
    methods=["GET"],
    response_model=ResolveResponse,
    response_model_exclude_none=True,
    include_in_schema=False,
)


@router.get("/mv", response_model=MvResponse)
async def mv_url(
    song_id: str = Query(..., alias="id", min_length=1),
    source: str = Query(...),
    mv_id: str | None = Query(None, alias="mvId", description="NetEase MV id"),
    credential: str | None = Depends(get_credential),
    service: MusicService = Depends(get_music_service),
) -> MvResponse:
    """Video variant of a song, {url: null} when it has none."""
    song = _song_ref(song_id, source, mv_id=mv_id)
    return MvResponse(url=await service.get_mv_url(song, credential))


@router.get("/yt/play")
async def youtube_play(
    video_id: str = Query(..., alias="id", min_length=1, description="YouTube video id"),
    range_header: str | None = Header(None, alias="range"),
    service: MusicService = Depends(get_music_service),
) -> StreamingResponse:
    """Extract the audio stream on this host (yt-dlp) and relay it.

    Range is forwarded so the player can seek.
    """
    stream = await service.open_youtube_stream(video_id, range_header=range_header)
    return StreamingResponse(
        stream.iter_body(),
        status_code=stream.status_code,
        headers=stream.headers,
        background=BackgroundTask(stream.aclose),
    )
