"""Range-preserving media relay.

Hey future me - this is what makes Bilibili (Referer-locked CDN) and yt-dlp
streams (IP-bound) playable in a browser. The relay forwards Range and mirrors
content-type/length/range, accept-ranges and last-modified. Upstream status is
passed through (206 stays 206!) or the player can't seek.
"""

import logging

from fastapi import APIRouter, Depends, Header, Query
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from unistream.api.dependencies import get_music_service
from unistream.application.services.music_service import MusicService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Relay"])


@router.get("/relay")
async def relay(
    url: str = Query(..., min_length=1, description="Absolute media URL"),
    referer: str | None = Query(None, description="Referer to send upstream"),
    range_header: str | None = Header(None, alias="range"),
    service: MusicService = Depends(get_music_service),
) -> StreamingResponse:
    """Stream `url` through this host.

    Raises:
        ValidationError: 422, url is not http(s)
        RelayUpstreamError: 502, upstream unreachable or answered outside 200-399
    """
    stream = await service.open_relay(url, range_header=range_header, referer=referer)
    return StreamingResponse(
        stream.iter_body(),
        status_code=stream.status_code,
        headers=stream.headers,
        background=BackgroundTask(stream.aclose),
    )


# Alias for clients of the original backend (GET /proxy?url=)
router.add_api_route("/proxy", relay, methods=["GET"], include_in_schema=False)
