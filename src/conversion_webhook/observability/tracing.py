"""
OpenTelemetry distributed tracing for the conversion webhook.

This module provides:
- TracerProvider construction with an OTLP gRPC exporter
- Trace context extraction from incoming API server requests (W3C traceparent)

The provider is returned to the caller instead of being installed as the
global provider; the webhook observer owns it and hands out tracers.

Usage:
    from conversion_webhook.observability.tracing import setup_tracing, get_tracer

    provider = setup_tracing(enabled=True, endpoint="http://otel:4317")
    tracer = get_tracer(provider, __name__)
    with tracer.start_as_current_span("convert"):
        ...
"""

import logging
from collections.abc import Mapping

from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SimpleSpanProcessor
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from opentelemetry.trace import Tracer
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

logger = logging.getLogger(__name__)


def setup_tracing(
    enabled: bool = False,
    endpoint: str = "http://localhost:4317",
    service_name: str = "aivenapplication-conversion-webhook",
    sample_rate: float = 1.0,
    insecure: bool = True,
    headers: dict[str, str] | None = None,
    use_simple_processor: bool = False,
) -> TracerProvider | None:
    """
    Build an OpenTelemetry TracerProvider for the webhook.

    Args:
        enabled: Enable tracing (if False, returns None and does nothing)
        endpoint: OTLP collector endpoint (gRPC)
        service_name: Service name for traces
        sample_rate: Sampling rate (0.0-1.0, 1.0 = 100% of traces)
        insecure: Use insecure connection (no TLS)
        headers: Additional headers for OTLP exporter
        use_simple_processor: Use SimpleSpanProcessor instead of BatchSpanProcessor
                              (useful for testing to ensure immediate export)

    Returns:
        TracerProvider if enabled, None otherwise
    """
    if not enabled:
        logger.info("OpenTelemetry tracing is disabled")
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

    # ParentBased respects the API server's sampling decision when it
    # propagates a traceparent; root spans use the ratio sampler
    sampler = ParentBased(root=TraceIdRatioBased(sample_rate))
    provider = TracerProvider(resource=resource, sampler=sampler)

    exporter = OTLPSpanExporter(
        endpoint=endpoint,
        insecure=insecure,
        headers=headers or {},
    )

    if use_simple_processor:
        processor = SimpleSpanProcessor(exporter)
    else:
        processor = BatchSpanProcessor(exporter)
    provider.add_span_processor(processor)

    logger.info("OpenTelemetry tracing initialized successfully")
    return provider


def shutdown_tracing(provider: TracerProvider | None) -> None:
    """Shutdown tracing and flush any pending spans."""
    if provider is not None:
        logger.info("Shutting down OpenTelemetry tracing")
        provider.shutdown()


def get_tracer(
    provider: trace.TracerProvider | None, name: str = __name__
) -> Tracer:
    """
    Get a tracer instance for creating spans.

    Args:
        provider: Provider returned by setup_tracing (None for a no-op tracer)
        name: Name of the tracer (typically __name__ of the module)

    Returns:
        Tracer instance (no-op if tracing is disabled)
    """
    if provider is None:
        provider = trace.NoOpTracerProvider()
    return provider.get_tracer(name)


def get_propagator() -> TraceContextTextMapPropagator:
    """Get the W3C trace context propagator."""
    return TraceContextTextMapPropagator()


def extract_trace_context(headers: Mapping[str, str]) -> Context:
    """
    Extract trace context from incoming request headers.

    Args:
        headers: Headers possibly containing a W3C traceparent

    Returns:
        Extracted context (empty if no traceparent was sent)
    """
    carrier = {key.lower(): value for key, value in headers.items()}
    return get_propagator().extract(carrier)
