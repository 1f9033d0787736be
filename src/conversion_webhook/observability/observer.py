"""
Observability context injected into the conversion adapter.

``WebhookObserver`` bundles the logging, metrics and tracing sinks the
conversion engine reports to. It is constructed once at startup by
``build_observer`` and passed explicitly to the adapter and the server;
nothing in the conversion path reaches for process-wide globals.
"""

import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.trace import Span, Status, StatusCode, Tracer

from conversion_webhook.errors import ConversionError
from conversion_webhook.models import ConversionRequest
from conversion_webhook.settings import Settings

from .logging import WebhookLogger
from .metrics import ConversionMetrics, setup_metrics_export, shutdown_metrics_export
from .tracing import get_tracer, setup_tracing, shutdown_tracing

UNSUPPORTED_VERSION_LABEL = "unsupported"
UNKNOWN_VERSION_LABEL = "unknown"


class RequestTracker:
    """Records the outcome of a single conversion request."""

    def __init__(
        self, observer: "WebhookObserver", request: ConversionRequest, span: Span
    ):
        self.observer = observer
        self.request = request
        self.span = span
        self._started = time.perf_counter()

    @property
    def elapsed(self) -> float:
        return time.perf_counter() - self._started

    def succeed(self, target_version: str, converted: int) -> None:
        duration = self.elapsed
        self.span.set_attribute("conversion.converted_count", converted)
        self.span.set_status(Status(StatusCode.OK))

        self.observer.metrics.record_request(target_version, True, duration)
        self.observer.metrics.record_objects_converted(target_version, converted)
        self.observer.logger.log_conversion_success(
            self.request.uid, self.request.desired_api_version, converted, duration
        )

    def fail(
        self, error: ConversionError, target_version: str = UNSUPPORTED_VERSION_LABEL
    ) -> None:
        duration = self.elapsed
        self.span.set_attribute("conversion.reason", error.reason)
        self.span.record_exception(error)
        self.span.set_status(Status(StatusCode.ERROR, error.message))

        self.observer.metrics.record_request(
            target_version, False, duration, reason=error.reason
        )
        self.observer.logger.log_conversion_failure(
            self.request.uid, self.request.desired_api_version, error, duration
        )


@dataclass
class WebhookObserver:
    """Logging, metrics and tracing capabilities for the conversion engine."""

    logger: WebhookLogger = field(default_factory=WebhookLogger)
    metrics: ConversionMetrics = field(default_factory=ConversionMetrics)
    tracer: Tracer = field(default_factory=lambda: get_tracer(None))
    tracer_provider: TracerProvider | None = None
    meter_provider: MeterProvider | None = None

    @contextmanager
    def track_request(self, request: ConversionRequest) -> Iterator[RequestTracker]:
        """
        Context manager wrapping the handling of one ConversionRequest.

        Opens a ``convert`` span, logs the received request and yields a
        tracker on which the caller reports success or failure.

        Args:
            request: The request being handled
        """
        self.logger.log_request_received(
            request.uid, request.desired_api_version, len(request.objects)
        )
        with self.tracer.start_as_current_span(
            "convert",
            attributes={
                "conversion.uid": request.uid,
                "conversion.desired_api_version": request.desired_api_version,
                "conversion.object_count": len(request.objects),
            },
        ) as span:
            yield RequestTracker(self, request, span)

    def record_invalid_request(self, error: ConversionError, duration: float) -> None:
        self.metrics.record_request(
            UNKNOWN_VERSION_LABEL, False, duration, reason=error.reason
        )
        self.logger.log_invalid_request(error)

    def shutdown(self) -> None:
        shutdown_tracing(self.tracer_provider)
        shutdown_metrics_export(self.meter_provider)


def build_observer(settings: Settings) -> WebhookObserver:
    """
    Construct the observer for a webhook process from its settings.

    Args:
        settings: Loaded webhook settings

    Returns:
        WebhookObserver with its own metrics registry, meter provider and
        tracer provider
    """
    provider = setup_tracing(
        enabled=settings.tracing_active,
        endpoint=settings.otlp_endpoint or "http://localhost:4317",
        service_name=settings.service_name,
        sample_rate=settings.tracing_sample_rate,
        insecure=settings.otlp_insecure,
    )
    meter_provider = setup_metrics_export(
        settings.otlp_endpoint,
        service_name=settings.service_name,
        insecure=settings.otlp_insecure,
        export_interval_millis=settings.metrics_export_interval_millis,
    )
    return WebhookObserver(
        logger=WebhookLogger(),
        metrics=ConversionMetrics(meter_provider=meter_provider),
        tracer=get_tracer(provider, "conversion_webhook"),
        tracer_provider=provider,
        meter_provider=meter_provider,
    )
