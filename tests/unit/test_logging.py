"""
Unit tests for structured logging.

Tests cover the JSON formatter, correlation ID and health probe filters,
and the WebhookLogger conversion events.
"""

import json
import logging

import pytest

from conversion_webhook.errors import BatchConversionError, MalformedVersionError
from conversion_webhook.observability.logging import (
    CorrelationIDFilter,
    HealthProbeFilter,
    StructuredFormatter,
    WebhookLogger,
    get_correlation_id,
    set_correlation_id,
    setup_structured_logging,
)


def make_record(message: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="conversion_webhook.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture(autouse=True)
def reset_correlation_id():
    set_correlation_id("")
    yield
    set_correlation_id("")


class TestStructuredFormatter:
    """Tests for the JSON formatter."""

    def test_formats_base_fields(self):
        record = make_record("hello", correlation_id="abc12345")

        data = json.loads(StructuredFormatter().format(record))

        assert data["message"] == "hello"
        assert data["level"] == "INFO"
        assert data["logger"] == "conversion_webhook.test"
        assert data["correlation_id"] == "abc12345"
        assert "timestamp" in data

    def test_includes_conversion_fields(self):
        record = make_record(
            "failed", uid="u-1", reason="ConversionFailed", object_index=2, unrelated="x"
        )

        data = json.loads(StructuredFormatter().format(record))

        assert data["uid"] == "u-1"
        assert data["reason"] == "ConversionFailed"
        assert data["object_index"] == 2
        assert "unrelated" not in data

    def test_only_webhook_fields_are_structured(self):
        record = make_record("probe", path="/healthz", http_status=200, uid="u-1")

        data = json.loads(StructuredFormatter().format(record))

        assert data["uid"] == "u-1"
        assert "path" not in data
        assert "http_status" not in data


class TestFilters:
    """Tests for the logging filters."""

    def test_health_probe_filter_suppresses_probe_paths(self):
        probe_filter = HealthProbeFilter()

        assert not probe_filter.filter(make_record('GET /healthz HTTP/1.1" 200'))
        assert not probe_filter.filter(make_record('GET /metrics HTTP/1.1" 200'))
        assert probe_filter.filter(make_record('POST /convert HTTP/1.1" 200'))

    def test_health_probe_filter_disabled(self):
        assert HealthProbeFilter(suppress_health_logs=False).filter(make_record("/readyz"))

    def test_correlation_id_filter_uses_context(self):
        set_correlation_id("req-uid")
        record = make_record("x")

        CorrelationIDFilter().filter(record)

        assert record.correlation_id == "req-uid"

    def test_correlation_id_filter_generates_id(self):
        record = make_record("x")

        CorrelationIDFilter().filter(record)

        assert len(record.correlation_id) == 8
        assert get_correlation_id() == record.correlation_id


class TestWebhookLogger:
    """Tests for WebhookLogger events."""

    def test_request_received_binds_uid(self, caplog):
        caplog.set_level(logging.INFO)

        corr_id = WebhookLogger("test.webhook").log_request_received("uid-42", "v2", 3)

        assert corr_id == "uid-42"
        assert get_correlation_id() == "uid-42"
        record = caplog.records[-1]
        assert record.object_count == 3
        assert record.desired_api_version == "v2"

    def test_conversion_failure_includes_index(self, caplog):
        caplog.set_level(logging.INFO)
        error = BatchConversionError(4, MalformedVersionError())

        WebhookLogger("test.webhook").log_conversion_failure("u", "v2", error, 0.001)

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert record.reason == "ConversionFailed"
        assert record.object_index == 4

    def test_invalid_request(self, caplog):
        caplog.set_level(logging.INFO)

        WebhookLogger("test.webhook").log_invalid_request(MalformedVersionError())

        assert caplog.records[-1].operation == "invalid_request"


class TestSetupStructuredLogging:
    """Tests for root logger configuration."""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_json_handler_installed(self):
        setup_structured_logging(log_level="DEBUG")

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, StructuredFormatter)

    def test_plain_formatter(self):
        setup_structured_logging(enable_json_formatting=False, correlation_id_enabled=False)

        formatter = logging.getLogger().handlers[0].formatter
        assert not isinstance(formatter, StructuredFormatter)

    def test_invalid_level_falls_back_to_info_with_warning(self, capsys):
        setup_structured_logging(log_level="LOUD")

        assert logging.getLogger().level == logging.INFO
        err = capsys.readouterr().err
        assert "Invalid log level 'LOUD'" in err
        assert '"level": "WARNING"' in err

    def test_level_names_are_case_insensitive(self, capsys):
        setup_structured_logging(log_level="warning")

        assert logging.getLogger().level == logging.WARNING
        assert "Invalid log level" not in capsys.readouterr().err
