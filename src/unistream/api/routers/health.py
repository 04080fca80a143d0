"""Health and diagnostics endpoints."""

# Hey future me - /health ist nur "Prozess lebt" (Docker HEALTHCHECK), /diagnostics
# fragt wirklich jede Quelle ab und dauert bis zu probe_timeout Sekunden!

from datetime import UTC, datetime

from fastapi import APIRouter, Depends

from unistream import __version__
from unistream.api.dependencies import get_music_service
from unistream.api.schemas import DiagnosticSchema, DiagnosticsResponse, HealthResponse
from unistream.application.services.music_service import MusicService

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness probe."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        timestamp=datetime.now(UTC).isoformat(),
    )


@router.get("/diagnostics", response_model=DiagnosticsResponse)
async def diagnostics(
    service: MusicService = Depends(get_music_service),
) -> DiagnosticsResponse:
    """Probe NetEase, Bilibili, the preferred mirrors and the backend relay."""
    results = await service.run_diagnostics()
    return DiagnosticsResponse(results=[DiagnosticSchema.from_dto(r) for r in results])
