"""Observability setup for OpenTelemetry, metrics, and structured logging."""

import logging

import structlog
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest
from sqlalchemy.ext.asyncio import AsyncEngine

from .config import settings

# Prometheus metrics
REGISTRY = CollectorRegistry()

BOOKINGS_CREATED = Counter(
    'bookings_created_total',
    'Bookings created in DRAFT with seats reserved',
    ['ticket_class'],
    registry=REGISTRY
)

BOOKINGS_CONFIRMED = Counter(
    'bookings_confirmed_total',
    'Bookings confirmed after successful payment',
    ['ticket_class'],
    registry=REGISTRY
)

BOOKINGS_FAILED = Counter(
    'bookings_failed_total',
    'Bookings failed because payment was declined',
    registry=REGISTRY
)

BOOKINGS_CANCELLED = Counter(
    'bookings_cancelled_total',
    'Bookings cancelled by the user or by hold expiry',
    ['reason'],
    registry=REGISTRY
)

RESERVATIONS_REJECTED = Counter(
    'seat_reservations_rejected_total',
    'Seat reservations refused for lack of capacity',
    ['ticket_class'],
    registry=REGISTRY
)

EXPIRY_SWEEPS = Counter(
    'booking_expiry_sweeps_total',
    'Expiry sweeps run by the background worker',
    registry=REGISTRY
)

BOOKINGS_EXPIRED = Counter(
    'bookings_expired_total',
    'Bookings cancelled by the expiry sweep',
    registry=REGISTRY
)

SEATS_HELD = Gauge(
    'seats_held',
    'Seats currently reserved and not yet committed',
    registry=REGISTRY
)


def setup_structured_logging(log_level: str | None = None, json_output: bool | None = None) -> None:
    """
    Route stdlib logging through structlog.

    Module loggers stay plain ``logging.getLogger(__name__)``; the ``extra``
    fields they pass end up as structured keys in the rendered event.
    """

    def add_trace_context(logger, method_name, event_dict):
        """Add trace context to log events."""
        span = trace.get_current_span()
        if span and span.is_recording():
            ctx = span.get_span_context()
            event_dict['trace_id'] = format(ctx.trace_id, '032x')
            event_dict['span_id'] = format(ctx.span_id, '016x')
        return event_dict

    level = log_level or settings.log_level
    if json_output is None:
        json_output = not settings.debug

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.ExtraAdder(),
        add_trace_context,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(),
        ],
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, level))


def setup_tracing(app_name: str = "railbook-api"):
    """Setup OpenTelemetry tracing."""
    resource = Resource.create({
        "service.name": app_name,
        "service.version": "1.0.0",
        "environment": settings.environment,
    })

    provider = TracerProvider(resource=resource)
    if settings.otlp_endpoint:
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otlp_endpoint)))
    trace.set_tracer_provider(provider)

    return trace.get_tracer(__name__)


def instrument_fastapi(app):
    """Instrument FastAPI with OpenTelemetry."""
    FastAPIInstrumentor.instrument_app(app)


def instrument_sqlalchemy(engine: AsyncEngine):
    """Instrument SQLAlchemy with OpenTelemetry."""
    SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)


class MetricsCollector:
    """Collector for business metrics."""

    @staticmethod
    def record_booking_created(ticket_class: str, seats: int):
        """Record a new DRAFT booking and the seats it holds."""
        BOOKINGS_CREATED.labels(ticket_class=ticket_class).inc()
        SEATS_HELD.inc(seats)

    @staticmethod
    def record_booking_confirmed(ticket_class: str, seats: int):
        """Record a confirmation; its seats stop counting as held."""
        BOOKINGS_CONFIRMED.labels(ticket_class=ticket_class).inc()
        SEATS_HELD.dec(seats)

    @staticmethod
    def record_booking_failed(seats: int):
        """Record a declined payment."""
        BOOKINGS_FAILED.inc()
        SEATS_HELD.dec(seats)

    @staticmethod
    def record_booking_cancelled(reason: str, seats: int):
        """Record a cancellation."""
        BOOKINGS_CANCELLED.labels(reason=reason).inc()
        SEATS_HELD.dec(seats)

    @staticmethod
    def record_reservation_rejected(ticket_class: str):
        """Record a reservation refused for lack of seats."""
        RESERVATIONS_REJECTED.labels(ticket_class=ticket_class).inc()

    @staticmethod
    def record_reservation_restored(seats: int):
        """Record a held reservation re-registered at start-up."""
        SEATS_HELD.inc(seats)

    @staticmethod
    def record_expiry_sweep(expired: int):
        """Record one expiry sweep and how many bookings it cancelled."""
        EXPIRY_SWEEPS.inc()
        BOOKINGS_EXPIRED.inc(expired)


def get_prometheus_metrics():
    """Get Prometheus metrics for the /metrics endpoint."""
    return generate_latest(REGISTRY)


# Global metrics collector instance
metrics_collector = MetricsCollector()
