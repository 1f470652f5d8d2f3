"""Observability setup for OpenTelemetry, metrics, and structured logging."""

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

SERVICE_NAME = "tourism-booking-api"
SERVICE_VERSION = "1.0.0"

# Prometheus metrics
REGISTRY = CollectorRegistry()

# Request metrics
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

# Business metrics
SEARCHES = Counter(
    'catalog_searches_total',
    'Total catalog searches',
    ['entity'],
    registry=REGISTRY
)

BOOKINGS_CREATED = Counter(
    'bookings_created_total',
    'Total bookings created',
    ['booking_type'],
    registry=REGISTRY
)

AVAILABILITY_REJECTIONS = Counter(
    'booking_availability_rejections_total',
    'Booking requests rejected for lack of inventory',
    ['booking_type'],
    registry=REGISTRY
)

BOOKING_TRANSITIONS = Counter(
    'booking_status_transitions_total',
    'Booking status transitions',
    ['from_status', 'to_status'],
    registry=REGISTRY
)

PAYMENT_TRANSITIONS = Counter(
    'booking_payment_transitions_total',
    'Booking payment status transitions',
    ['to_status'],
    registry=REGISTRY
)

REVIEWS_CREATED = Counter(
    'reviews_created_total',
    'Total reviews created',
    registry=REGISTRY
)


def _add_trace_context(logger, method_name, event_dict):
    span = trace.get_current_span()
    if span and span.is_recording():
        ctx = span.get_span_context()
        event_dict['trace_id'] = format(ctx.trace_id, '032x')
        event_dict['span_id'] = format(ctx.span_id, '016x')
    return event_dict


def setup_structured_logging():
    """
    Send structlog and stdlib records through one structlog pipeline.

    Services log with ``logging.getLogger(__name__)`` and ``extra=`` fields;
    the root handler's ProcessorFormatter adds the request id bound by
    RequestIDMiddleware, the active trace ids and those extra fields, then
    renders console output in development and JSON elsewhere.
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        _add_trace_context,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    renderer = structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer()

    structlog.configure(
        processors=shared_processors + [
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors + [structlog.stdlib.ExtraAdder()],
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(settings.log_level)


def _resource() -> Resource:
    return Resource.create({
        "service.name": SERVICE_NAME,
        "service.version": SERVICE_VERSION,
        "environment": settings.environment,
    })


def setup_tracing():
    """Setup OpenTelemetry tracing."""
    provider = TracerProvider(resource=_resource())
    trace.set_tracer_provider(provider)

    if settings.otlp_endpoint:
        otlp_exporter = OTLPSpanExporter(endpoint=settings.otlp_endpoint)
        provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

    return trace.get_tracer(__name__)


def setup_metrics():
    """Setup OpenTelemetry metrics."""
    if settings.otlp_endpoint:
        otlp_exporter = OTLPMetricExporter(endpoint=settings.otlp_endpoint)
        reader = PeriodicExportingMetricReader(exporter=otlp_exporter, export_interval_millis=60000)
        metrics.set_meter_provider(MeterProvider(resource=_resource(), metric_readers=[reader]))

    return metrics.get_meter(__name__)


def instrument_fastapi(app):
    """Instrument FastAPI with OpenTelemetry."""
    FastAPIInstrumentor.instrument_app(app)


def instrument_sqlalchemy(engine):
    """Instrument the async engine's sync core with OpenTelemetry."""
    SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)


class MetricsCollector:
    """Collector for business metrics."""

    @staticmethod
    def record_request(method: str, endpoint: str, status_code: int, duration: float):
        REQUEST_COUNT.labels(method=method, endpoint=endpoint, status_code=str(status_code)).inc()
        REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(duration)

    @staticmethod
    def record_search(entity: str):
        SEARCHES.labels(entity=entity).inc()

    @staticmethod
    def record_booking_created(booking_type: str):
        BOOKINGS_CREATED.labels(booking_type=booking_type).inc()

    @staticmethod
    def record_availability_rejection(booking_type: str):
        AVAILABILITY_REJECTIONS.labels(booking_type=booking_type).inc()

    @staticmethod
    def record_status_transition(from_status: str, to_status: str):
        BOOKING_TRANSITIONS.labels(from_status=from_status, to_status=to_status).inc()

    @staticmethod
    def record_payment_transition(to_status: str):
        PAYMENT_TRANSITIONS.labels(to_status=to_status).inc()

    @staticmethod
    def record_review_created():
        REVIEWS_CREATED.inc()


def get_prometheus_metrics(names=None) -> bytes:
    """Render the registry, optionally restricted to the given sample names."""
    registry = REGISTRY.restricted_registry(names) if names else REGISTRY
    return generate_latest(registry)


# Global metrics collector instance
metrics_collector = MetricsCollector()
