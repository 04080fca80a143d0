"""Application lifecycle management.

This module handles the FastAPI lifespan context manager that builds the one
MusicService of this process and closes its HTTP pool on shutdown.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from unistream.application.services.music_service import MusicService
from unistream.config import Settings, get_settings
from unistream.infrastructure.observability import configure_logging, configure_tracing

logger = logging.getLogger(__name__)


# Listen future me, @asynccontextmanager makes this a CONTEXT MANAGER for FastAPI lifespan!
# Everything before `yield` runs at STARTUP, everything after at SHUTDOWN. If create_app()
# got a prebuilt service (tests), we use it and leave closing it to whoever built it.
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown tasks including:
    - Logging configuration
    - Optional OpenTelemetry tracing
    - MusicService construction (attached to app.state)
    - HTTP pool cleanup
    """
    settings: Settings = getattr(app.state, "settings", None) or get_settings()

    configure_logging(
        log_level=settings.log_level,
        json_format=settings.observability.log_json_format,
        app_name=settings.app_name,
    )
    logger.info("Starting application: %s", settings.app_name)

    if settings.observability.enable_tracing:
        configure_tracing(settings)

    owns_service = getattr(app.state, "music_service", None) is None
    if owns_service:
        app.state.music_service = MusicService(settings)
    service: MusicService = app.state.music_service

    logger.info(
        "Service ready: piped=%s invidious=%s backend=%s server_extraction=%s",
        service.piped_pool.preferred,
        service.invidious_pool.pick(),
        service.runtime.backend_relay_url or "-",
        service.extractor is not None,
    )

    try:
        yield
    finally:
        logger.info("Shutting down application")
        if owns_service:
            await service.close()
            app.state.music_service = None
