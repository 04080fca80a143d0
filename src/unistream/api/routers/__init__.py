"""API router initialization."""

# Hey future me, this is the MAIN API router aggregator! main.py mounts it under /api, so
# /search becomes /api/search etc. Routers with their own prefix (search, plugins, settings)
# define it in their file. /url and /proxy are aliases registered inside playback/relay.

from fastapi import APIRouter

from unistream.api.routers import browse, health, playback, plugins, relay, search, settings

api_router = APIRouter()

api_router.include_router(search.router)
api_router.include_router(playback.router)
api_router.include_router(relay.router)
api_router.include_router(browse.router)
api_router.include_router(plugins.router)
api_router.include_router(settings.router)
api_router.include_router(health.router)

__all__ = [
    "api_router",
    "browse",
    "health",
    "playback",
    "plugins",
    "relay",
    "search",
    "settings",
]
