"""Unified search endpoints.

Hey future me - two flavors of the SAME fan-out:
- GET /search         waits for every provider (or its budget) and returns {songs}.
                      This is also the contract other UniStream instances call when
                      they use us as their backend relay.
- GET /search/stream  Server-Sent Events, one `batch` event per provider arrival,
                      then `done`. The player renders NetEase hits after ~1s instead
                      of waiting for a dead YouTube mirror.
"""

import json
import logging
from collections.abc import AsyncIterator
from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from sse_starlette.sse import EventSourceResponse

from unistream.api.dependencies import get_credential, get_music_service
from unistream.api.schemas import ProviderBatchSchema, SearchResponse, SongSchema
from unistream.application.services.music_service import MusicService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/search", tags=["Search"])


@router.get("", response_model=SearchResponse)
async def search(
    q: str = Query("", description="Free-text query"),
    credential: str | None = Depends(get_credential),
    service: MusicService = Depends(get_music_service),
) -> SearchResponse:
    """Search every active provider and return the merged songs.

    A blank query returns an empty list without touching any provider.
    """
    songs = await service.search(q, credential)
    return SearchResponse(songs=[SongSchema.from_dto(s) for s in songs])


@router.get("/stream")
async def search_stream(
    request: Request,
    q: str = Query("", description="Free-text query"),
    credential: str | None = Depends(get_credential),
    service: MusicService = Depends(get_music_service),
) -> EventSourceResponse:
    """Stream search batches as providers finish.

    Example JS client:
    ```javascript
    const es = new EventSource('/api/search/stream?q=' + encodeURIComponent(q));
    es.addEventListener('batch', (e) => appendSongs(JSON.parse(e.data).songs));
    es.addEventListener('done', () => es.close());
    ```
    """

    async def event_generator() -> AsyncIterator[dict[str, Any]]:
        total = 0
        async for result in service.search_stream(q, credential):
            if await request.is_disconnected():
                # providers keep running to completion, we just stop listening
                logger.debug(f"Search stream for '{q}' abandoned by client")
                return
            total += len(result.songs)
            yield {
                "event": "batch",
                "data": ProviderBatchSchema.from_dto(result).model_dump_json(by_alias=True),
            }
        yield {"event": "done", "data": json.dumps({"total": total})}

    return EventSourceResponse(event_generator())
