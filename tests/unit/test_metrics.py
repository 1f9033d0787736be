"""Unit tests for conversion metrics."""

import io
from unittest.mock import patch

import pytest
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import ConsoleMetricExporter, InMemoryMetricReader
from prometheus_client import CollectorRegistry

from conversion_webhook.observability import ConversionMetrics
from conversion_webhook.observability.metrics import (
    setup_metrics_export,
    shutdown_metrics_export,
)


@pytest.fixture
def metric_reader():
    return InMemoryMetricReader()


@pytest.fixture
def meter_provider(metric_reader):
    provider = MeterProvider(metric_readers=[metric_reader])
    yield provider
    provider.shutdown()


def collected_points(reader):
    """Map metric name to its data points from one collection."""
    points = {}
    for resource_metrics in reader.get_metrics_data().resource_metrics:
        for scope_metrics in resource_metrics.scope_metrics:
            for metric in scope_metrics.metrics:
                points[metric.name] = list(metric.data.data_points)
    return points


class TestConversionMetrics:
    """Tests for ConversionMetrics recording and rendering."""

    def test_instances_are_isolated(self):
        first = ConversionMetrics()
        second = ConversionMetrics()

        first.record_request("v2", True, 0.01)

        assert first.registry is not second.registry
        assert second.registry.get_sample_value(
            "conversion_webhook_requests_total",
            {"desired_version": "v2", "result": "success", "reason": ""},
        ) is None

    def test_uses_supplied_registry(self):
        registry = CollectorRegistry()

        assert ConversionMetrics(registry).registry is registry

    def test_record_failure(self):
        metrics = ConversionMetrics()

        metrics.record_request("v2", False, 0.002, reason="ConversionFailed")

        assert metrics.registry.get_sample_value(
            "conversion_webhook_requests_total",
            {"desired_version": "v2", "result": "failure", "reason": "ConversionFailed"},
        ) == 1.0
        assert metrics.registry.get_sample_value(
            "conversion_webhook_request_duration_seconds_count", {"result": "failure"}
        ) == 1.0

    def test_record_objects_converted_skips_zero(self):
        metrics = ConversionMetrics()

        metrics.record_objects_converted("v1", 0)
        metrics.record_objects_converted("v2", 3)

        assert metrics.registry.get_sample_value(
            "conversion_webhook_objects_converted_total", {"target_version": "v1"}
        ) is None
        assert metrics.registry.get_sample_value(
            "conversion_webhook_objects_converted_total", {"target_version": "v2"}
        ) == 3.0

    def test_render(self):
        metrics = ConversionMetrics()
        metrics.record_request("v1", True, 0.001)

        output = metrics.render().decode()

        assert "conversion_webhook_requests_total" in output
        assert metrics.content_type.startswith("text/plain")


class TestOtlpMetrics:
    """Tests for the OpenTelemetry side of ConversionMetrics."""

    def test_request_counters_are_recorded(self, meter_provider, metric_reader):
        metrics = ConversionMetrics(meter_provider=meter_provider)

        metrics.record_request("v2", True, 0.01)
        metrics.record_request("v2", False, 0.02, reason="ConversionFailed")
        metrics.record_objects_converted("v2", 4)

        points = collected_points(metric_reader)
        requests = {
            (p.attributes["result"], p.attributes["reason"]): p.value
            for p in points["conversion_webhook.requests"]
        }
        assert requests == {("success", ""): 1, ("failure", "ConversionFailed"): 1}
        assert sum(p.count for p in points["conversion_webhook.request.duration"]) == 2
        (converted,) = points["conversion_webhook.objects.converted"]
        assert converted.value == 4
        assert converted.attributes == {"target_version": "v2"}

    def test_without_meter_provider_is_noop(self):
        metrics = ConversionMetrics()

        metrics.record_request("v2", True, 0.01)
        metrics.record_objects_converted("v2", 1)

        assert metrics.registry.get_sample_value(
            "conversion_webhook_objects_converted_total", {"target_version": "v2"}
        ) == 1.0


class TestSetupMetricsExport:
    """Tests for the periodic OTLP metrics exporter."""

    def test_disabled_without_endpoint(self):
        assert setup_metrics_export("") is None

    def test_shutdown_none_is_noop(self):
        shutdown_metrics_export(None)

    @patch("conversion_webhook.observability.metrics.OTLPMetricExporter")
    def test_enabled_with_endpoint(self, mock_exporter):
        mock_exporter.return_value = ConsoleMetricExporter(out=io.StringIO())

        provider = setup_metrics_export(
            "http://collector:4317", service_name="test-webhook", insecure=False
        )

        try:
            assert isinstance(provider, MeterProvider)
            mock_exporter.assert_called_once_with(
                endpoint="http://collector:4317", insecure=False
            )
        finally:
            shutdown_metrics_export(provider)

    @patch("conversion_webhook.observability.metrics.PeriodicExportingMetricReader")
    @patch("conversion_webhook.observability.metrics.OTLPMetricExporter")
    def test_exports_every_thirty_seconds_by_default(self, mock_exporter, mock_reader):
        mock_reader.return_value = InMemoryMetricReader()

        provider = setup_metrics_export("http://collector:4317")

        try:
            mock_reader.assert_called_once_with(
                mock_exporter.return_value, export_interval_millis=30_000
            )
        finally:
            shutdown_metrics_export(provider)
