"""FastAPI application factory and uvicorn entry point."""

import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from unistream import __version__
from unistream.api.exception_handlers import register_exception_handlers
from unistream.api.routers import api_router
from unistream.application.services.music_service import MusicService
from unistream.config import Settings, get_settings
from unistream.infrastructure.lifecycle import lifespan
from unistream.infrastructure.observability import RequestLoggingMiddleware, instrument_app

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, service: MusicService | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Startup configuration (environment by default)
        service: Prebuilt service context, mainly for tests; the lifespan
            builds one from settings otherwise

    Returns:
        Configured FastAPI app with all routes under /api
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="UniStream",
        description="Multi-source music search, playback resolution and media relay",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.music_service = service

    # Hey future me - the players are browser/webview apps on other origins. Everything
    # here is read-only or operator-level anyway, so CORS is wide open.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Range", "Accept-Ranges", "Content-Length", "X-Correlation-ID"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app)
    app.include_router(api_router, prefix="/api")

    if settings.observability.enable_tracing:
        instrument_app(app)

    return app


def run() -> None:
    """Console entry point (`unistream`)."""
    settings = get_settings()
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        # our middleware logs requests with correlation ids
        access_log=False,
    )


if __name__ == "__main__":
    run()
