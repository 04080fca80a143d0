"""Plugin management endpoints.

Hey future me - a plugin is Python source text that gets EXECUTED in this process.
There is no sandbox (same trust model as the old client's JS plugins). Only
expose these endpoints to people you'd give a shell to.
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status

from unistream.api.dependencies import get_music_service
from unistream.api.schemas import (
    PluginManifestResponse,
    PluginSchema,
    PluginSourceRequest,
    PluginUrlRequest,
)
from unistream.application.services.music_service import MusicService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/plugins", tags=["Plugins"])


@router.get("", response_model=list[PluginSchema])
async def list_plugins(
    service: MusicService = Depends(get_music_service),
) -> list[PluginSchema]:
    return [PluginSchema.from_dto(info) for info in service.list_plugins()]


@router.post("", response_model=PluginSchema, status_code=status.HTTP_201_CREATED)
async def install_plugin(
    body: PluginSourceRequest,
    service: MusicService = Depends(get_music_service),
) -> PluginSchema:
    """Install from source text. Same id as an installed plugin replaces it.

    Raises:
        PluginFaultError: 400, source does not load or exports nothing usable
    """
    return PluginSchema.from_dto(service.add_plugin(body.source))


@router.post("/url", response_model=PluginSchema, status_code=status.HTTP_201_CREATED)
async def install_plugin_from_url(
    body: PluginUrlRequest,
    service: MusicService = Depends(get_music_service),
) -> PluginSchema:
    return PluginSchema.from_dto(await service.add_plugin_from_url(body.url))


@router.post("/manifest", response_model=PluginManifestResponse)
async def install_manifest(
    manifest: list[Any] | dict[str, Any] = Body(..., description="List of {url} entries or {plugins: [...]}"),
    service: MusicService = Depends(get_music_service),
) -> PluginManifestResponse:
    """Install every plugin a manifest lists. Broken entries are skipped (and logged)."""
    return PluginManifestResponse(installed=await service.install_plugins_from_manifest(manifest))


@router.delete("/{plugin_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_plugin(
    plugin_id: str,
    service: MusicService = Depends(get_music_service),
) -> None:
    if not service.remove_plugin(plugin_id):
        raise HTTPException(status_code=404, detail=f"Plugin not installed: {plugin_id}")
