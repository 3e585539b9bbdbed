"""
Distributed Tracing with OpenTelemetry.

Traces outgoing API calls so client spans join the backend's traces.
"""

from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Tracer

from vibing.config import settings


def setup_tracing() -> None:
    """
    Configure OpenTelemetry tracing with OTLP export.

    Sets up:
    - TracerProvider with service resource
    - OTLP exporter to collector
    """
    if not settings.tracing_enabled:
        return

    resource = Resource.create(
        {
            "service.name": settings.service_name,
            "service.version": settings.client_version,
        }
    )

    provider = TracerProvider(resource=resource)
    otlp_exporter = OTLPSpanExporter(
        endpoint=settings.otlp_endpoint,
        insecure=settings.otlp_insecure,
    )
    provider.add_span_processor(BatchSpanProcessor(otlp_exporter))
    trace.set_tracer_provider(provider)


def instrument_httpx(client: Any) -> None:
    """
    Instrument one httpx.AsyncClient for automatic request spans.

    Must be called after the client is created.
    """
    if not settings.tracing_enabled:
        return

    HTTPXClientInstrumentor.instrument_client(client)


def get_tracer(name: str) -> Tracer:
    """Get a tracer for manual spans (no-op when tracing is disabled)."""
    return trace.get_tracer(name)
