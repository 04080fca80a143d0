"""Dependency injection for API endpoints."""

import logging

from fastapi import Query, Request

from unistream.application.services.music_service import MusicService
from unistream.domain.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


# Hey future me, the MusicService is built ONCE in the lifespan (see infrastructure/lifecycle.py)
# and attached to app.state.music_service. Tests pass their own into create_app(service=...).
# If it's missing the lifespan never ran - 503 instead of an AttributeError 500.
def get_music_service(request: Request) -> MusicService:
    """Get the shared MusicService from app state.

    Raises:
        ConfigurationError: The app was started without a service context
    """
    service = getattr(request.app.state, "music_service", None)
    if service is None:
        raise ConfigurationError("Music service not initialized")
    return service


def get_credential(
    cookie: str | None = Query(None, description="Raw NetEase credential as pasted by the user"),
) -> str | None:
    """The caller's stored credential; blank means anonymous."""
    if cookie is None or not cookie.strip():
        return None
    return cookie
