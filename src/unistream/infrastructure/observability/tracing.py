"""OpenTelemetry tracing setup.

Hey future me - the aggregation engine opens one span per provider branch via
get_tracer(). Without configure_tracing() those spans go to the API's no-op
provider, so tracing costs nothing unless UNISTREAM_OBSERVABILITY__ENABLE_TRACING
is set.
"""

import logging
from typing import TYPE_CHECKING, Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from unistream import __version__

if TYPE_CHECKING:
    from unistream.config.settings import Settings

logger = logging.getLogger(__name__)


def configure_tracing(settings: "Settings") -> TracerProvider:
    """Install the global tracer provider described by the observability section.

    Exporters: OTLP gRPC when otlp_endpoint is set, stdout when
    enable_console_exporter is on. Neither means spans are recorded but dropped.
    """
    obs = settings.observability
    provider = TracerProvider(
        resource=Resource.create(
            {
                "service.name": settings.app_name,
                "service.version": __version__,
                "deployment.environment": settings.app_env,
            }
        )
    )

    exporters: list[str] = []
    if obs.otlp_endpoint:
        provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=obs.otlp_endpoint, insecure=True))
        )
        exporters.append(f"otlp={obs.otlp_endpoint}")
    if obs.enable_console_exporter:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        exporters.append("console")

    trace.set_tracer_provider(provider)
    logger.info("Tracing enabled (%s)", ", ".join(exporters) or "no exporter")
    return provider


def instrument_app(app: Any) -> None:
    """Instrument FastAPI and outgoing httpx calls."""
    FastAPIInstrumentor.instrument_app(app)
    HTTPXClientInstrumentor().instrument()


def get_tracer(name: str) -> trace.Tracer:
    return trace.get_tracer(name)
