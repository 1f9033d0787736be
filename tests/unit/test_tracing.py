"""
Unit tests for OpenTelemetry tracing and the webhook observer.

Spans are captured with an in-memory exporter attached to a provider that
is passed to the observer explicitly; no global tracer provider is set.
"""

import io
from unittest.mock import MagicMock, patch

import pytest
from opentelemetry import trace
from opentelemetry.sdk.metrics.export import ConsoleMetricExporter
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode

from conversion_webhook.conversion import ConversionAdapter
from conversion_webhook.models import ConversionRequest
from conversion_webhook.observability import WebhookObserver, build_observer
from conversion_webhook.observability.tracing import (
    extract_trace_context,
    get_tracer,
    setup_tracing,
    shutdown_tracing,
)
from conversion_webhook.settings import Settings


@pytest.fixture
def span_exporter():
    return InMemorySpanExporter()


@pytest.fixture
def tracer_provider(span_exporter):
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    yield provider
    provider.shutdown()


@pytest.fixture
def adapter(tracer_provider):
    observer = WebhookObserver(
        tracer=get_tracer(tracer_provider, "test"), tracer_provider=tracer_provider
    )
    return ConversionAdapter(observer=observer)


class TestSetupTracing:
    """Test setup_tracing function."""

    def test_setup_tracing_disabled(self):
        assert setup_tracing(enabled=False) is None

    @patch("conversion_webhook.observability.tracing.OTLPSpanExporter")
    def test_setup_tracing_enabled(self, mock_exporter):
        mock_exporter.return_value = MagicMock()

        provider = setup_tracing(
            enabled=True,
            endpoint="http://collector:4317",
            service_name="test-webhook",
            sample_rate=0.5,
            use_simple_processor=True,
        )

        try:
            assert isinstance(provider, TracerProvider)
            assert provider.resource.attributes["service.name"] == "test-webhook"
            mock_exporter.assert_called_once_with(
                endpoint="http://collector:4317", insecure=True, headers={}
            )
        finally:
            shutdown_tracing(provider)

    def test_shutdown_tracing_none_is_noop(self):
        shutdown_tracing(None)

    def test_get_tracer_without_provider_is_noop(self):
        tracer = get_tracer(None)

        with tracer.start_as_current_span("noop") as span:
            assert not span.is_recording()


class TestBuildObserver:
    """Tests for observer construction from settings."""

    def test_tracing_disabled_by_default(self, monkeypatch):
        monkeypatch.delenv("OTEL_EXPORTER_OTLP_ENDPOINT", raising=False)
        monkeypatch.delenv("OTEL_TRACING_ENABLED", raising=False)

        observer = build_observer(Settings())

        assert observer.tracer_provider is None
        assert observer.meter_provider is None
        observer.shutdown()

    @patch(
        "conversion_webhook.observability.metrics.OTLPMetricExporter",
        new=lambda **kwargs: ConsoleMetricExporter(out=io.StringIO()),
    )
    @patch("conversion_webhook.observability.tracing.OTLPSpanExporter")
    def test_otlp_endpoint_enables_tracing(self, mock_exporter, monkeypatch):
        monkeypatch.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://collector:4317")

        observer = build_observer(Settings())

        try:
            assert isinstance(observer.tracer_provider, TracerProvider)
            assert mock_exporter.call_args.kwargs["endpoint"] == "http://collector:4317"
        finally:
            observer.shutdown()


class TestConversionSpans:
    """Spans recorded for conversion requests."""

    def test_success_span(self, adapter, span_exporter):
        adapter.convert(
            ConversionRequest(uid="u-1", desiredAPIVersion="v2", objects=[{"apiVersion": "v1"}])
        )

        (span,) = span_exporter.get_finished_spans()
        assert span.name == "convert"
        assert span.attributes["conversion.uid"] == "u-1"
        assert span.attributes["conversion.converted_count"] == 1
        assert span.status.status_code == StatusCode.OK

    def test_failure_span(self, adapter, span_exporter):
        adapter.convert(
            ConversionRequest(uid="u-2", desiredAPIVersion="v2", objects=[{"apiVersion": "v7"}])
        )

        (span,) = span_exporter.get_finished_spans()
        assert span.status.status_code == StatusCode.ERROR
        assert span.attributes["conversion.reason"] == "ConversionFailed"
        assert any(event.name == "exception" for event in span.events)


class TestTraceContextPropagation:
    """Tests for extracting the API server's trace context."""

    def test_extract_traceparent(self):
        headers = {
            "Traceparent": "00-0af7651916cd43dd8448eb211c80319c-b7ad6b7169203331-01"
        }

        context = extract_trace_context(headers)

        span_context = trace.get_current_span(context).get_span_context()
        assert span_context.trace_id == 0x0AF7651916CD43DD8448EB211C80319C
        assert span_context.is_remote

    def test_extract_without_headers(self):
        context = extract_trace_context({})

        assert not trace.get_current_span(context).get_span_context().is_valid
