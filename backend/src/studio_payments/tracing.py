"""OpenTelemetry tracing configuration."""
import structlog
from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from studio_payments.config import settings
from studio_payments.database import engine

logger = structlog.get_logger(__name__)


def setup_tracing(app: FastAPI) -> None:
    """
    Export traces for FastAPI requests and SQLAlchemy queries over OTLP.

    Args:
        app: FastAPI application instance
    """
    resource = Resource(attributes={SERVICE_NAME: settings.otel_service_name})

    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otel_exporter_otlp_endpoint)))
    trace.set_tracer_provider(provider)

    FastAPIInstrumentor.instrument_app(app)
    # Async engines are instrumented through their sync engine
    SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)

    logger.info("tracing_enabled", endpoint=settings.otel_exporter_otlp_endpoint)
