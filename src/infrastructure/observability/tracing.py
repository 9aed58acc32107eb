"""OpenTelemetry distributed tracing setup.

Configures the OpenTelemetry SDK with an OTLP exporter and auto-instruments
FastAPI and SQLAlchemy.
"""

import logging
from importlib.metadata import PackageNotFoundError, version

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

from src.infrastructure.config import get_settings

logger = logging.getLogger(__name__)


def _service_version() -> str:
    try:
        return version("service-lifecycle-engine")
    except PackageNotFoundError:
        return "0.0.0"


def setup_tracing(engine=None) -> TracerProvider:
    """Setup OpenTelemetry tracing with OTLP exporter.

    Args:
        engine: Optional AsyncEngine to instrument; its sync_engine is used

    Returns:
        TracerProvider instance

    Note:
        FastAPI must be instrumented separately after app creation
        using instrument_fastapi_app()
    """
    settings = get_settings()
    otel_config = settings.observability

    resource = Resource.create(
        {
            "service.name": otel_config.service_name,
            "service.version": _service_version(),
            "deployment.environment": settings.environment,
        }
    )

    sampler = TraceIdRatioBased(otel_config.trace_sample_rate)
    provider = TracerProvider(resource=resource, sampler=sampler)

    if otel_config.tracing_enabled:
        try:
            otlp_exporter = OTLPSpanExporter(
                endpoint=otel_config.exporter_otlp_endpoint,
                insecure=True,
            )
            provider.add_span_processor(BatchSpanProcessor(otlp_exporter))
            logger.info(
                "OpenTelemetry tracing configured",
                extra={
                    "service_name": otel_config.service_name,
                    "otlp_endpoint": otel_config.exporter_otlp_endpoint,
                    "sample_rate": otel_config.trace_sample_rate,
                },
            )
        except Exception as e:
            logger.warning(
                "Failed to configure OTLP exporter, spans will not be exported",
                extra={"error": str(e)},
            )

    trace.set_tracer_provider(provider)

    if engine is not None:
        try:
            SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)
            logger.info("SQLAlchemy auto-instrumentation enabled")
        except Exception as e:
            logger.warning(
                "Failed to enable SQLAlchemy auto-instrumentation",
                extra={"error": str(e)},
            )

    return provider


def instrument_fastapi_app(app) -> None:
    """Instrument FastAPI application with OpenTelemetry.

    Must be called after FastAPI app is created.
    """
    try:
        FastAPIInstrumentor.instrument_app(app)
        logger.info("FastAPI auto-instrumentation enabled")
    except Exception as e:
        logger.warning(
            "Failed to instrument FastAPI app",
            extra={"error": str(e)},
        )
