"""
OpenTelemetry distributed tracing for the CSR approver.

This module provides:
- Tracer provider setup with an OTLP/gRPC exporter
- A decorator for kopf handlers that opens one span per invocation

Usage:
    from csr_approver.observability.tracing import setup_tracing, traced_handler

    setup_tracing(enabled=True, endpoint="http://otel-collector:4317")

    @kopf.on.create("certificatesigningrequests", ...)
    @traced_handler("reconcile_csr")
    def handle_csr(name, **kwargs):
        ...
"""

import asyncio
import functools
import logging
from collections.abc import Callable
from typing import ParamSpec, TypeVar

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from opentelemetry.trace import SpanKind, Status, StatusCode, Tracer

logger = logging.getLogger(__name__)

# Module-level state
_tracer_provider: TracerProvider | None = None
_initialized: bool = False

P = ParamSpec("P")
R = TypeVar("R")


def setup_tracing(
    enabled: bool = False,
    endpoint: str = "http://localhost:4317",
    service_name: str = "csr-approver",
    sample_rate: float = 1.0,
    insecure: bool = True,
) -> TracerProvider | None:
    """
    Initialize OpenTelemetry tracing for the operator.

    Args:
        enabled: Enable tracing (if False, returns None and does nothing)
        endpoint: OTLP collector endpoint (gRPC)
        service_name: Service name for traces
        sample_rate: Sampling rate (0.0-1.0, 1.0 = 100% of traces)
        insecure: Use insecure connection (no TLS)

    Returns:
        TracerProvider if enabled, None otherwise
    """
    global _tracer_provider, _initialized

    if _initialized:
        logger.debug("Tracing already initialized, skipping")
        return _tracer_provider

    if not enabled:
        logger.info("OpenTelemetry tracing is disabled")
        _initialized = True
        return None

    logger.info(
        f"Initializing OpenTelemetry tracing: endpoint={endpoint}, "
        f"service={service_name}, sample_rate={sample_rate}"
    )

    resource = Resource.create(
        {
            "service.name": service_name,
            "deployment.environment": "kubernetes",
        }
    )
    sampler = ParentBased(root=TraceIdRatioBased(sample_rate))
    _tracer_provider = TracerProvider(resource=resource, sampler=sampler)

    exporter = OTLPSpanExporter(endpoint=endpoint, insecure=insecure)
    _tracer_provider.add_span_processor(BatchSpanProcessor(exporter))

    trace.set_tracer_provider(_tracer_provider)

    _initialized = True
    return _tracer_provider


def shutdown_tracing() -> None:
    """Shutdown tracing and flush any pending spans."""
    global _tracer_provider, _initialized

    if _tracer_provider is not None:
        logger.info("Shutting down OpenTelemetry tracing")
        _tracer_provider.shutdown()
        _tracer_provider = None

    _initialized = False


def get_tracer(name: str = __name__) -> Tracer:
    """Get a tracer instance (no-op if tracing is disabled)."""
    return trace.get_tracer(name)


def is_tracing_enabled() -> bool:
    """Check if tracing is currently enabled and initialized."""
    return _initialized and _tracer_provider is not None


def traced_handler(
    operation_name: str,
    span_kind: SpanKind = SpanKind.INTERNAL,
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Decorator for kopf handlers to automatically create spans.

    The span carries the resource name passed by kopf, records exceptions,
    and sets its status from the handler's success or failure.

    Args:
        operation_name: Name of the span
        span_kind: Kind of span (INTERNAL, SERVER, CLIENT, etc.)
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        def span_attributes(kwargs: dict) -> dict[str, str]:
            return {
                "k8s.resource.name": str(kwargs.get("name", "unknown")),
                "k8s.resource.type": "certificatesigningrequest",
                "kopf.handler": getattr(func, "__name__", "unknown"),
            }

        @functools.wraps(func)
        async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            tracer = get_tracer(func.__module__ or __name__)
            with tracer.start_as_current_span(
                operation_name, kind=span_kind, attributes=span_attributes(kwargs)
            ) as span:
                try:
                    result = await func(*args, **kwargs)  # type: ignore[misc]
                    span.set_status(Status(StatusCode.OK))
                    return result
                except Exception as e:
                    span.set_status(Status(StatusCode.ERROR, str(e)))
                    span.record_exception(e)
                    raise

        @functools.wraps(func)
        def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            tracer = get_tracer(func.__module__ or __name__)
            with tracer.start_as_current_span(
                operation_name, kind=span_kind, attributes=span_attributes(kwargs)
            ) as span:
                try:
                    result = func(*args, **kwargs)
                    span.set_status(Status(StatusCode.OK))
                    return result
                except Exception as e:
                    span.set_status(Status(StatusCode.ERROR, str(e)))
                    span.record_exception(e)
                    raise

        if asyncio.iscoroutinefunction(func):
            return async_wrapper  # type: ignore[return-value]
        return sync_wrapper

    return decorator
