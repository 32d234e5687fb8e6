"""
OpenTelemetry wiring for AuthSmith.

Permission-check and rate-limit counters are created through
``metrics.get_meter()`` at import time; they stay no-ops until
``setup_telemetry()`` installs the meter provider, after which they are
scraped from ``/metrics`` through the Prometheus reader.

Spans go to the OTLP collector when OTEL_EXPORTER_OTLP_ENDPOINT is set and
to the console otherwise. Health and scrape requests are not traced.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from loguru import logger
from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.exporter.prometheus import PrometheusMetricReader
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.redis import RedisInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter, SpanExporter
from prometheus_fastapi_instrumentator import Instrumentator

from authsmith_core.config import settings

UNTRACED_PATHS = ("/health", "/metrics")


@dataclass(frozen=True)
class Telemetry:
    """Providers installed for this process."""

    tracer_provider: TracerProvider
    meter_provider: MeterProvider


def _resource() -> Resource:
    return Resource.create(
        {
            "service.name": settings.SERVICE_NAME,
            "service.instance.id": settings.OTEL_SERVICE_NAME or f"{settings.SERVICE_NAME}-instance",
        }
    )


def _span_exporter() -> SpanExporter:
    if settings.OTEL_EXPORTER_OTLP_ENDPOINT:
        logger.info(f"Tracing to OTLP collector at {settings.OTEL_EXPORTER_OTLP_ENDPOINT}")
        return OTLPSpanExporter(endpoint=settings.OTEL_EXPORTER_OTLP_ENDPOINT)
    logger.info("No OTLP endpoint configured, tracing to console")
    return ConsoleSpanExporter()


@lru_cache
def setup_telemetry() -> Telemetry | None:
    """Install tracer and meter providers once per process.

    Returns:
        The installed providers, or None when ENABLE_TELEMETRY is off.
    """
    if not settings.ENABLE_TELEMETRY:
        logger.info("Telemetry disabled via configuration")
        return None

    resource = _resource()

    tracer_provider = TracerProvider(resource=resource)
    tracer_provider.add_span_processor(BatchSpanProcessor(_span_exporter()))
    trace.set_tracer_provider(tracer_provider)

    meter_provider = MeterProvider(resource=resource, metric_readers=[PrometheusMetricReader()])
    metrics.set_meter_provider(meter_provider)

    # Permission cache and rate limit windows both go through redis.asyncio
    RedisInstrumentor().instrument(tracer_provider=tracer_provider)

    logger.info(f"Telemetry initialized for {settings.SERVICE_NAME}")
    return Telemetry(tracer_provider=tracer_provider, meter_provider=meter_provider)


def instrument_app(app) -> None:
    """Trace requests and expose Prometheus metrics on a FastAPI app."""
    telemetry = setup_telemetry()
    if telemetry is None:
        return

    FastAPIInstrumentor.instrument_app(
        app,
        tracer_provider=telemetry.tracer_provider,
        excluded_urls=",".join(UNTRACED_PATHS),
    )
    Instrumentator(excluded_handlers=list(UNTRACED_PATHS)).instrument(app).expose(
        app, include_in_schema=False
    )
