"""Observability: structured logging, request middleware, tracing."""

from unistream.infrastructure.observability.log_messages import LogMessages
from unistream.infrastructure.observability.logging import (
    configure_logging,
    get_correlation_id,
    set_correlation_id,
)
from unistream.infrastructure.observability.middleware import RequestLoggingMiddleware
from unistream.infrastructure.observability.tracing import (
    configure_tracing,
    get_tracer,
    instrument_app,
)

__all__ = [
    "LogMessages",
    "RequestLoggingMiddleware",
    "configure_logging",
    "configure_tracing",
    "get_correlation_id",
    "get_tracer",
    "instrument_app",
    "set_correlation_id",
]
