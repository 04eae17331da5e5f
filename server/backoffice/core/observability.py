"""Observability setup for OpenTelemetry, Prometheus metrics, and structured logging."""

import logging

import structlog
from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

from .config import settings

SERVICE_NAME = "travel-backoffice-api"

# Prometheus metrics
REGISTRY = CollectorRegistry()

REQUEST_COUNT = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status_code'],
    registry=REGISTRY
)

REQUEST_DURATION = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    registry=REGISTRY
)

# Reconciliation metrics
RECONCILIATION_RUNS = Counter(
    'reconciliation_runs_total',
    'Total booking auto-completion runs',
    ['trigger'],
    registry=REGISTRY
)

BOOKINGS_AUTO_COMPLETED = Counter(
    'bookings_auto_completed_total',
    'Total bookings moved to completed by reconciliation',
    registry=REGISTRY
)

RECONCILIATION_ITEM_FAILURES = Counter(
    'reconciliation_item_failures_total',
    'Total bookings that failed to auto-complete',
    registry=REGISTRY
)

GUIDES_RELEASED = Counter(
    'guides_released_total',
    'Total guides set back to available by reconciliation',
    registry=REGISTRY
)

RECONCILIATION_DURATION = Histogram(
    'reconciliation_run_duration_seconds',
    'Duration of an auto-completion run in seconds',
    registry=REGISTRY
)

# Loyalty metrics
BONUS_CALCULATIONS = Counter(
    'loyalty_bonus_calculations_total',
    'Total bonus calculations',
    ['tier'],
    registry=REGISTRY
)

GIFT_CARDS_ISSUED = Counter(
    'refund_gift_cards_issued_total',
    'Total gift cards issued for approved refunds',
    ['tier'],
    registry=REGISTRY
)


def setup_structured_logging():
    """Configure structured logging with structlog."""

    def add_trace_context(logger, method_name, event_dict):
        """Add trace context to log events."""
        span = trace.get_current_span()
        if span and span.is_recording():
            ctx = span.get_span_context()
            event_dict['trace_id'] = format(ctx.trace_id, '032x')
            event_dict['span_id'] = format(ctx.span_id, '016x')
        return event_dict

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_trace_context,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level)
        ),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _resource() -> Resource:
    return Resource.create({
        "service.name": SERVICE_NAME,
        "service.version": "1.0.0",
        "environment": settings.environment,
    })


def setup_tracing():
    """Setup OpenTelemetry tracing."""
    provider = TracerProvider(resource=_resource())
    trace.set_tracer_provider(provider)

    if settings.otlp_endpoint:
        provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otlp_endpoint))
        )

    return trace.get_tracer(__name__)


def setup_metrics():
    """Setup OpenTelemetry metrics export (only when an OTLP endpoint is configured)."""
    if settings.otlp_endpoint:
        reader = PeriodicExportingMetricReader(
            exporter=OTLPMetricExporter(endpoint=settings.otlp_endpoint),
            export_interval_millis=60000,
        )
        metrics.set_meter_provider(MeterProvider(resource=_resource(), metric_readers=[reader]))

    return metrics.get_meter(__name__)


def instrument_fastapi(app):
    """Instrument FastAPI with OpenTelemetry."""
    FastAPIInstrumentor.instrument_app(app)


def instrument_sqlalchemy():
    """Instrument SQLAlchemy with OpenTelemetry."""
    SQLAlchemyInstrumentor().instrument()


class MetricsCollector:
    """Collector for business metrics."""

    @staticmethod
    def record_request(method: str, endpoint: str, status_code: int, duration: float):
        REQUEST_COUNT.labels(method=method, endpoint=endpoint, status_code=str(status_code)).inc()
        REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(duration)

    @staticmethod
    def record_reconciliation_run(
        trigger: str,
        completed: int,
        failed: int,
        guides_released: int,
        duration: float,
    ):
        """Record the outcome of one auto-completion run."""
        RECONCILIATION_RUNS.labels(trigger=trigger).inc()
        BOOKINGS_AUTO_COMPLETED.inc(completed)
        RECONCILIATION_ITEM_FAILURES.inc(failed)
        GUIDES_RELEASED.inc(guides_released)
        RECONCILIATION_DURATION.observe(duration)

    @staticmethod
    def record_bonus_calculated(tier: str):
        BONUS_CALCULATIONS.labels(tier=tier).inc()

    @staticmethod
    def record_gift_card_issued(tier: str):
        GIFT_CARDS_ISSUED.labels(tier=tier).inc()


def get_prometheus_metrics():
    """Get Prometheus metrics for the /metrics endpoint."""
    return generate_latest(REGISTRY)


# Global metrics collector instance
metrics_collector = MetricsCollector()


def get_logger(name: str):
    """Get a structlog logger bound to ``name``."""
    return structlog.get_logger(name)
