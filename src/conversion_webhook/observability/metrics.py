"""
Metrics for the conversion webhook.

Metrics are bound to a registry owned by the ``ConversionMetrics`` instance
rather than to the process-wide default registry, so each webhook instance
(and each test) gets an isolated set of counters.

The same measurements are also recorded on OpenTelemetry instruments. When an
OTLP endpoint is configured, ``setup_metrics_export`` builds a MeterProvider
that pushes them to the collector every 30 seconds; otherwise the instruments
come from a no-op provider and only the Prometheus endpoint serves them.
"""

import logging

from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.metrics import MeterProvider as ApiMeterProvider
from opentelemetry.metrics import NoOpMeterProvider
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

logger = logging.getLogger(__name__)

REQUEST_DURATION_BUCKETS = (0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.5)
DEFAULT_EXPORT_INTERVAL_MILLIS = 30_000


def setup_metrics_export(
    endpoint: str,
    service_name: str = "aivenapplication-conversion-webhook",
    insecure: bool = True,
    export_interval_millis: int = DEFAULT_EXPORT_INTERVAL_MILLIS,
) -> MeterProvider | None:
    """
    Build a MeterProvider that periodically pushes metrics over OTLP.

    Args:
        endpoint: OTLP collector endpoint (gRPC); export is disabled if empty
        service_name: Service name for the exported resource
        insecure: Use insecure connection (no TLS)
        export_interval_millis: Interval between exports

    Returns:
        MeterProvider if an endpoint is configured, None otherwise
    """
    if not endpoint:
        logger.info(
            "OTEL_EXPORTER_OTLP_ENDPOINT not set; metrics will be recorded but "
            "only served on /metrics"
        )
        return None

    logger.info(f"Initializing OTLP metrics exporter: endpoint={endpoint}")

    exporter = OTLPMetricExporter(endpoint=endpoint, insecure=insecure)
    reader = PeriodicExportingMetricReader(
        exporter, export_interval_millis=export_interval_millis
    )
    resource = Resource.create({"service.name": service_name})
    return MeterProvider(resource=resource, metric_readers=[reader])


def shutdown_metrics_export(provider: MeterProvider | None) -> None:
    """Flush pending metrics and stop the periodic exporter."""
    if provider is not None:
        logger.info("Shutting down OTLP metrics exporter")
        provider.shutdown()


class ConversionMetrics:
    """Collects and exposes metrics for conversion requests."""

    content_type = CONTENT_TYPE_LATEST

    def __init__(
        self,
        registry: CollectorRegistry | None = None,
        meter_provider: ApiMeterProvider | None = None,
    ):
        """
        Initialize conversion metrics.

        Args:
            registry: Registry to register metrics with (a fresh one if omitted)
            meter_provider: OpenTelemetry provider for the pushed instruments
                            (no-op if omitted)
        """
        self.registry = registry if registry is not None else CollectorRegistry()

        self.requests_total = Counter(
            "conversion_webhook_requests_total",
            "Total number of conversion requests by outcome",
            ["desired_version", "result", "reason"],
            registry=self.registry,
        )
        self.request_duration = Histogram(
            "conversion_webhook_request_duration_seconds",
            "Time spent converting a ConversionReview batch",
            ["result"],
            buckets=REQUEST_DURATION_BUCKETS,
            registry=self.registry,
        )
        self.objects_converted = Counter(
            "conversion_webhook_objects_converted_total",
            "Total number of objects converted",
            ["target_version"],
            registry=self.registry,
        )

        meter = (meter_provider or NoOpMeterProvider()).get_meter("conversion_webhook")
        self.otel_requests = meter.create_counter(
            "conversion_webhook.requests",
            unit="1",
            description="Total number of conversion requests by outcome",
        )
        self.otel_request_duration = meter.create_histogram(
            "conversion_webhook.request.duration",
            unit="s",
            description="Time spent converting a ConversionReview batch",
        )
        self.otel_objects_converted = meter.create_counter(
            "conversion_webhook.objects.converted",
            unit="1",
            description="Total number of objects converted",
        )

    def record_request(
        self,
        desired_version: str,
        success: bool,
        duration: float,
        reason: str = "",
    ) -> None:
        """
        Record the outcome of one conversion request.

        Args:
            desired_version: Requested target version (empty if unknown)
            success: Whether the whole batch converted
            duration: Request handling time in seconds
            reason: Failure reason code (empty on success)
        """
        result = "success" if success else "failure"
        self.requests_total.labels(
            desired_version=desired_version, result=result, reason=reason
        ).inc()
        self.request_duration.labels(result=result).observe(duration)

        self.otel_requests.add(
            1,
            {"desired_version": desired_version, "result": result, "reason": reason},
        )
        self.otel_request_duration.record(duration, {"result": result})

    def record_objects_converted(self, target_version: str, count: int) -> None:
        if count:
            self.objects_converted.labels(target_version=target_version).inc(count)
            self.otel_objects_converted.add(count, {"target_version": target_version})

    def render(self) -> bytes:
        """Render the registry in the Prometheus text exposition format."""
        return generate_latest(self.registry)
