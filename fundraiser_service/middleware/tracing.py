"""
OpenTelemetry tracing, exported over OTLP when ``otlp_endpoint`` is set.

Without an endpoint the global no-op tracer stays in place, so the spans
opened by the services (``reconcile_donation``) cost nothing.
"""
import logging

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
import structlog

from fundraiser_service.core.config import get_settings

logging.getLogger("opentelemetry").setLevel(logging.WARNING)

logger = structlog.get_logger(__name__)

UNTRACED_ROUTES = "/health,/health/ready,/metrics"


def _tracer_provider(service_name: str, version: str, endpoint: str) -> TracerProvider:
    provider = TracerProvider(resource=Resource.create({
        SERVICE_NAME: service_name,
        SERVICE_VERSION: version,
    }))
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
    return provider


def init_tracing(app, engine) -> bool:
    """Install the OTLP tracer provider and instrument the app and engine"""
    settings = get_settings()
    if not settings.otlp_endpoint:
        logger.info("Tracing disabled, no OTLP endpoint configured")
        return False

    try:
        trace.set_tracer_provider(
            _tracer_provider(settings.service_name, app.version, settings.otlp_endpoint)
        )
        FastAPIInstrumentor.instrument_app(app, excluded_urls=UNTRACED_ROUTES)
        SQLAlchemyInstrumentor().instrument(engine=engine, enable_commenter=True)
    except Exception as e:
        # The ledger keeps serving without traces
        logger.error("Tracing setup failed", error=str(e), exc_info=True)
        return False

    logger.info("Tracing enabled", service_name=settings.service_name, otlp_endpoint=settings.otlp_endpoint)
    return True


def get_tracer(name: str):
    return trace.get_tracer(name)
