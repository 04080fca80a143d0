"""Exception handlers mapping the domain error taxonomy to HTTP responses.

Hey future me - ProviderUnavailableError is NOT mapped here. It never
leaves the aggregation engine / resolver (they turn it into empty results or a
ResolutionFailedError). If one ever reaches a route, the 500 is a real bug.
"""

import json
import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from unistream.domain.exceptions import (
    ConfigurationError,
    DomainException,
    PaywallRequiredError,
    PlaybackUnsupportedError,
    PluginFaultError,
    RelayUpstreamError,
    ResolutionFailedError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# (HTTP status, log level). Lookup walks the MRO, so PlaybackUnsupportedError gets 422
# even though it is also a ResolutionFailedError.
_DOMAIN_ERRORS: dict[type[DomainException], tuple[int, int]] = {
    PaywallRequiredError: (402, logging.INFO),  # UI shows "VIP song"
    PlaybackUnsupportedError: (422, logging.INFO),  # capability gap, e.g. plugin without resolver
    ResolutionFailedError: (404, logging.INFO),  # UI offers "skip"
    RelayUpstreamError: (502, logging.WARNING),  # only before the first byte went out
    PluginFaultError: (400, logging.WARNING),
    ValidationError: (422, logging.WARNING),
    ConfigurationError: (503, logging.ERROR),
}

# attributes worth a structured log field, when the exception carries them
_CONTEXT_FIELDS = {
    "source": "source",
    "song_id": "song_id",
    "plugin_id": "plugin_id",
    "status_code": "upstream_status",
}


def _status_for(exc: DomainException) -> tuple[int, int]:
    for klass in type(exc).__mro__:
        if klass in _DOMAIN_ERRORS:
            return _DOMAIN_ERRORS[klass]
    return 500, logging.ERROR


async def domain_error_handler(request: Request, exc: DomainException) -> JSONResponse:
    """Render a DomainException as {"detail": message} with its mapped status.

    Paywall responses also carry "reason" (trial only, fee tier, ...) so the
    client can tell the user why.
    """
    status_code, level = _status_for(exc)

    context: dict[str, Any] = {"path": request.url.path}
    for attr, field in _CONTEXT_FIELDS.items():
        value = getattr(exc, attr, None)
        if value is not None:
            context[field] = value
    logger.log(level, "%s at %s: %s", type(exc).__name__, request.url.path, exc.message, extra=context)

    content: dict[str, Any] = {"detail": exc.message}
    if isinstance(exc, PaywallRequiredError):
        content["reason"] = exc.reason
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    """Install the domain mapping plus request-validation and HTTP error handlers."""
    for exc_type in _DOMAIN_ERRORS:
        app.add_exception_handler(exc_type, domain_error_handler)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        # raw request bodies show up as bytes in "input", JSONResponse can't serialize those
        errors = jsonable_encoder(
            exc.errors(), custom_encoder={bytes: lambda b: b.decode("utf-8", errors="replace")}
        )
        logger.warning("Request validation error at %s: %s", request.url.path, errors)
        return JSONResponse(status_code=422, content={"detail": errors})

    @app.exception_handler(json.JSONDecodeError)
    async def json_decode_handler(request: Request, exc: json.JSONDecodeError) -> JSONResponse:
        logger.warning("Malformed JSON at %s: %s", request.url.path, exc)
        return JSONResponse(status_code=400, content={"detail": f"Malformed JSON: {exc.msg}"})

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        level = logging.ERROR if exc.status_code >= 500 else logging.INFO
        logger.log(level, "HTTP %d at %s: %s", exc.status_code, request.url.path, exc.detail)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})
