"""Request logging middleware with correlation id propagation."""

import logging
import time
from collections.abc import Awaitable, Callable, Iterable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from unistream.infrastructure.observability.logging import set_correlation_id

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"

# Relay requests are range requests from the media element, several per song.
# Logging each at INFO drowns everything else.
_QUIET_PREFIXES = ("/api/relay", "/api/proxy", "/api/yt/play", "/api/health")


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One start and one completion line per request, correlation id in and out.

    The id comes from the X-Correlation-ID header (or is generated) and is echoed on
    the response. Everything logged while handling the request, including provider
    branches of an aggregated search, carries it.
    """

    def __init__(self, app: ASGIApp, quiet_prefixes: Iterable[str] = _QUIET_PREFIXES) -> None:
        super().__init__(app)
        self._quiet = tuple(quiet_prefixes)

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        correlation_id = set_correlation_id(request.headers.get(CORRELATION_HEADER))
        path = request.url.path
        label = f"{request.method} {path}"
        fields = {"method": request.method, "path": path}
        log = logger.debug if path.startswith(self._quiet) else logger.info

        log(f"→ {label}", extra=fields)
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            # streaming relays never get here once headers are out, the relay service logs those
            logger.exception(
                f"✗ {label} failed after {_elapsed_ms(started)}ms",
                extra={**fields, "error_type": type(e).__name__},
            )
            raise

        elapsed = _elapsed_ms(started)
        log(
            f"← {label} {response.status_code} ({elapsed}ms)",
            extra={**fields, "status_code": response.status_code, "duration_ms": elapsed},
        )
        response.headers[CORRELATION_HEADER] = correlation_id
        return response
