"""Centralized webhook settings using pydantic-settings.

This module provides a single source of truth for all webhook configuration
loaded from environment variables. Uses pydantic for automatic validation,
type coercion, and documentation.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from conversion_webhook.constants import (
    DEFAULT_API_GROUP,
    DEFAULT_READINESS_DRAIN_SECONDS,
    DEFAULT_SHUTDOWN_GRACE_SECONDS,
)


class Settings(BaseSettings):
    """Webhook configuration loaded from environment variables.

    All settings have sensible defaults for an in-cluster deployment. Override
    via environment variables as documented per field.
    """

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # HTTPS listener
    host: str = Field(
        default="0.0.0.0",
        validation_alias="WEBHOOK_HOST",
        description="Host address to bind the webhook server",
    )
    port: int = Field(
        default=8443,
        validation_alias="WEBHOOK_PORT",
        description="Port for the conversion webhook server",
    )
    tls_enabled: bool = Field(
        default=True,
        validation_alias="TLS_ENABLED",
        description="Serve HTTPS using the certificate and key below",
    )
    tls_cert_path: str = Field(
        default="/app/tls.crt",
        validation_alias="TLS_CERT_PATH",
        description="Path to the PEM encoded serving certificate",
    )
    tls_key_path: str = Field(
        default="/app/tls.key",
        validation_alias="TLS_KEY_PATH",
        description="Path to the PEM encoded private key",
    )
    shutdown_grace_seconds: float = Field(
        default=DEFAULT_SHUTDOWN_GRACE_SECONDS,
        validation_alias="SHUTDOWN_GRACE_SECONDS",
        description="Grace period for in-flight requests on termination",
    )
    readiness_drain_seconds: float = Field(
        default=DEFAULT_READINESS_DRAIN_SECONDS,
        ge=0.0,
        validation_alias="READINESS_DRAIN_SECONDS",
        description="Time /readyz reports not-ready before the listener closes",
    )

    # Conversion
    api_group: str = Field(
        default=DEFAULT_API_GROUP,
        validation_alias="API_GROUP",
        description="API group of the converted custom resource",
    )

    # Logging configuration
    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_logs: bool = Field(
        default=True,
        validation_alias="JSON_LOGS",
        description="Enable JSON formatted logging for structured log aggregation",
    )
    correlation_ids: bool = Field(
        default=True,
        validation_alias="CORRELATION_IDS",
        description="Enable correlation IDs in logs for request tracing",
    )
    log_health_probes: bool = Field(
        default=False,
        validation_alias="LOG_HEALTH_PROBES",
        description="Log health probe and metrics scrape requests",
    )

    # Tracing
    tracing_enabled: bool = Field(
        default=False,
        validation_alias="OTEL_TRACING_ENABLED",
        description="Enable OpenTelemetry tracing",
    )
    otlp_endpoint: str = Field(
        default="",
        validation_alias="OTEL_EXPORTER_OTLP_ENDPOINT",
        description="OTLP collector endpoint (gRPC); setting it enables tracing",
    )
    otlp_insecure: bool = Field(
        default=True,
        validation_alias="OTEL_EXPORTER_OTLP_INSECURE",
        description="Use an insecure connection to the OTLP collector",
    )
    tracing_sample_rate: float = Field(
        default=1.0,
        ge=0.0,
        le=1.0,
        validation_alias="OTEL_TRACES_SAMPLER_RATE",
        description="Sampling rate for root spans (0.0-1.0)",
    )
    metrics_export_interval_millis: int = Field(
        default=30_000,
        gt=0,
        validation_alias="OTEL_METRIC_EXPORT_INTERVAL",
        description="Interval between OTLP metric exports in milliseconds",
    )
    service_name: str = Field(
        default="aivenapplication-conversion-webhook",
        validation_alias="OTEL_SERVICE_NAME",
        description="Service name reported on traces",
    )

    @property
    def tracing_active(self) -> bool:
        """Tracing runs when explicitly enabled or when an OTLP endpoint is set."""
        return self.tracing_enabled or bool(self.otlp_endpoint)
