"""
OpenTelemetry tracing setup.
"""

import logging
from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Tracer

from taskflow import __version__
from taskflow.config import Settings

logger = logging.getLogger(__name__)

TRACER_NAME = "taskflow"


def setup_tracing(settings: Settings, component: str) -> Tracer:
    """
    Set up OpenTelemetry tracing for one process.

    When tracing is disabled the global no-op provider is left in place and
    spans cost nothing.

    Args:
        settings: Application settings.
        component: "producer" or "consumer", appended to the service name.

    Returns:
        Tracer: The tracer instance.
    """
    if not settings.otel_enabled:
        return get_tracer()

    resource = Resource.create(
        {
            "service.name": f"{settings.otel_service_name}-{component}",
            "service.version": __version__,
        }
    )
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(
        BatchSpanProcessor(
            OTLPSpanExporter(
                endpoint=settings.otel_exporter_otlp_endpoint,
                insecure=True,
            )
        )
    )
    trace.set_tracer_provider(provider)
    logger.info(
        "Tracing enabled",
        extra={"endpoint": settings.otel_exporter_otlp_endpoint}
    )

    return get_tracer()


def instrument_fastapi(app: Any) -> None:
    """
    Instrument FastAPI application with OpenTelemetry.

    Args:
        app: The FastAPI application instance.
    """
    FastAPIInstrumentor.instrument_app(app)


def instrument_sqlalchemy(engine: Any) -> None:
    """
    Instrument SQLAlchemy engine with OpenTelemetry.

    Args:
        engine: The SQLAlchemy (sync) engine instance.
    """
    SQLAlchemyInstrumentor().instrument(engine=engine)


def get_tracer() -> Tracer:
    """Get the tracer from the current global provider."""
    return trace.get_tracer(TRACER_NAME)
