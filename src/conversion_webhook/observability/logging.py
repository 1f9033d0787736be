"""
Structured logging utilities for the conversion webhook.

This module provides correlation ID tracking, structured log formatting,
and typed conversion event logging for production troubleshooting.
"""

import json
import logging
import uuid
from contextvars import ContextVar
from datetime import UTC, datetime

# Context variable for tracking correlation IDs across async operations
correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")

# Paths that should be filtered from access logs (health probes)
HEALTH_PROBE_PATHS = frozenset({"/healthz", "/readyz", "/metrics"})


class HealthProbeFilter(logging.Filter):
    """
    Logging filter that suppresses health probe and metrics endpoint logs.

    These endpoints are hit frequently by Kubernetes probes and monitoring
    systems, generating excessive noise in logs during debugging.
    """

    def __init__(self, suppress_health_logs: bool = True):
        """
        Initialize health probe filter.

        Args:
            suppress_health_logs: If True, filter out health probe logs
        """
        super().__init__()
        self.suppress_health_logs = suppress_health_logs

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.suppress_health_logs:
            return True

        message = record.getMessage()
        return all(path not in message for path in HEALTH_PROBE_PATHS)


class CorrelationIDFilter(logging.Filter):
    """Logging filter that adds correlation ID to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        # Get correlation ID from context, or generate a new one
        current_correlation_id = correlation_id.get()
        if not current_correlation_id:
            current_correlation_id = generate_correlation_id()
            correlation_id.set(current_correlation_id)

        record.correlation_id = current_correlation_id
        return True


class StructuredFormatter(logging.Formatter):
    """
    Structured JSON formatter for logs with correlation ID support.

    Formats log records as structured JSON for better parsing and analysis
    in production monitoring systems.
    """

    # Extra fields copied onto the JSON document when present on the record
    structured_fields = (
        "uid",
        "desired_api_version",
        "object_count",
        "object_index",
        "operation",
        "result",
        "reason",
        "error_type",
        "duration",
    )

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", ""),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for field in self.structured_fields:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        return json.dumps(log_data, default=str)


def generate_correlation_id() -> str:
    """
    Generate a new correlation ID.

    Returns:
        Unique correlation ID string
    """
    return str(uuid.uuid4())[:8]  # Short 8-character ID for readability


def set_correlation_id(corr_id: str) -> str:
    """
    Set the correlation ID for the current context.

    Args:
        corr_id: Correlation ID to set

    Returns:
        The correlation ID that was set
    """
    correlation_id.set(corr_id)
    return corr_id


def get_correlation_id() -> str:
    """Get the current correlation ID, or empty string if none set."""
    return correlation_id.get("")


def setup_structured_logging(
    log_level: str = "INFO",
    enable_json_formatting: bool = True,
    correlation_id_enabled: bool = True,
    log_health_probes: bool = False,
) -> None:
    """
    Set up structured logging for the webhook.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        enable_json_formatting: Whether to use JSON formatting
        correlation_id_enabled: Whether to enable correlation ID tracking
        log_health_probes: Whether to log health probe requests (default: False)
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()

    formatter: logging.Formatter
    if enable_json_formatting:
        formatter = StructuredFormatter()
    elif correlation_id_enabled:
        formatter = logging.Formatter(
            "%(asctime)s - %(correlation_id)s - %(name)s - %(levelname)s - %(message)s"
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    handler.setFormatter(formatter)

    if correlation_id_enabled:
        handler.addFilter(CorrelationIDFilter())

    # Add health probe filter to suppress noisy probe logs
    if not log_health_probes:
        handler.addFilter(HealthProbeFilter(suppress_health_logs=True))

    root_logger.addHandler(handler)
    level = logging.getLevelName(log_level.upper())
    root_logger.setLevel(level if isinstance(level, int) else logging.INFO)

    # Suppress aiohttp access logs which spam with probe requests
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)
    logging.getLogger("aiohttp.server").setLevel(logging.WARNING)
    logging.getLogger("aiohttp.web").setLevel(logging.WARNING)
    logging.getLogger("opentelemetry").setLevel(logging.WARNING)

    if not isinstance(level, int):
        logging.getLogger(__name__).warning(
            f"Invalid log level {log_level!r}; falling back to INFO"
        )


class WebhookLogger:
    """
    Logger for conversion events with structured logging support.

    Provides convenient methods for logging the conversion request lifecycle
    with proper correlation ID tracking and structured data.
    """

    def __init__(self, name: str = "conversion_webhook.conversion"):
        self.logger = logging.getLogger(name)

    def log_request_received(
        self, uid: str, desired_api_version: str, object_count: int
    ) -> str:
        """
        Log an incoming conversion request and bind its uid as correlation ID.

        Args:
            uid: Request uid from the ConversionReview
            desired_api_version: Requested target version
            object_count: Number of objects in the batch

        Returns:
            The correlation ID used for this request
        """
        corr_id = set_correlation_id(uid or generate_correlation_id())

        self.logger.info(
            f"Received conversion request for {object_count} object(s) to {desired_api_version}",
            extra={
                "uid": uid,
                "desired_api_version": desired_api_version,
                "object_count": object_count,
                "operation": "convert_start",
            },
        )
        return corr_id

    def log_conversion_success(
        self, uid: str, desired_api_version: str, object_count: int, duration: float
    ) -> None:
        self.logger.info(
            f"Converted {object_count} object(s) to {desired_api_version}",
            extra={
                "uid": uid,
                "desired_api_version": desired_api_version,
                "object_count": object_count,
                "operation": "convert_success",
                "result": "success",
                "duration": duration,
            },
        )

    def log_conversion_failure(
        self,
        uid: str,
        desired_api_version: str,
        error: Exception,
        duration: float,
    ) -> None:
        """
        Log a rejected conversion request.

        Args:
            uid: Request uid
            desired_api_version: Requested target version
            error: The ConversionError that voided the batch
            duration: Time spent before failing, in seconds
        """
        extra = {
            "uid": uid,
            "desired_api_version": desired_api_version,
            "operation": "convert_failure",
            "result": "failure",
            "reason": getattr(error, "reason", type(error).__name__),
            "error_type": type(error).__name__,
            "duration": duration,
        }
        index = getattr(error, "index", None)
        if index is not None:
            extra["object_index"] = index

        self.logger.warning(f"Conversion failed: {error}", extra=extra)

    def log_invalid_request(self, error: Exception) -> None:
        self.logger.warning(
            f"Rejected malformed ConversionReview: {error}",
            extra={
                "operation": "invalid_request",
                "result": "failure",
                "reason": getattr(error, "reason", type(error).__name__),
                "error_type": type(error).__name__,
            },
        )
