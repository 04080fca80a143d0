"""Runtime settings endpoints.

Changes apply to the running service context only (nothing is written to disk).
Restart = back to whatever the environment / .env says.
"""

import logging

from fastapi import APIRouter, Depends

from unistream.api.dependencies import get_music_service
from unistream.api.schemas import SettingsResponse, SettingsUpdateRequest
from unistream.application.services.music_service import MusicService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/settings", tags=["Settings"])


@router.get("", response_model=SettingsResponse)
async def get_runtime_settings(
    service: MusicService = Depends(get_music_service),
) -> SettingsResponse:
    return SettingsResponse.from_runtime(service.runtime)


@router.put("", response_model=SettingsResponse)
async def update_runtime_settings(
    body: SettingsUpdateRequest,
    service: MusicService = Depends(get_music_service),
) -> SettingsResponse:
    """Apply a runtime configuration change.

    Raises:
        ValidationError: 422, malformed URL, unknown source or non-positive timeout
    """
    runtime = service.configure(
        backend_relay_url=body.backend_relay_url,
        custom_mirror_url=body.custom_mirror_url,
        per_provider_timeout_ms=body.per_provider_timeout_ms,
    )
    return SettingsResponse.from_runtime(runtime)
