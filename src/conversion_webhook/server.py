#!/usr/bin/env python3
"""
Conversion webhook server - main entry point.

Serves the CRD conversion endpoint for AivenApplication resources over
HTTPS, together with liveness/readiness probes and Prometheus metrics.

Usage:
    python -m conversion_webhook
    # Or via the console script:
    conversion-webhook

Environment Variables:
    WEBHOOK_PORT: Port to listen on (default 8443)
    TLS_CERT_PATH / TLS_KEY_PATH: PEM encoded certificate and key
    LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
    OTEL_EXPORTER_OTLP_ENDPOINT: OTLP collector; enables tracing when set
"""

import asyncio
import logging
import signal
import ssl
import sys

from aiohttp.web import (
    Application,
    AppRunner,
    Request,
    Response,
    TCPSite,
    json_response,
)
from opentelemetry import context as otel_context

from conversion_webhook.constants import (
    CONVERT_PATH,
    DEFAULT_READINESS_DRAIN_SECONDS,
    DEFAULT_SHUTDOWN_GRACE_SECONDS,
    HEALTHZ_PATH,
    METRICS_PATH,
    READYZ_PATH,
)
from conversion_webhook.conversion import ConversionAdapter
from conversion_webhook.conversion.adapter import invalid_request_review
from conversion_webhook.errors import InvalidRequestError
from conversion_webhook.observability import (
    WebhookObserver,
    build_observer,
    setup_structured_logging,
)
from conversion_webhook.observability.tracing import extract_trace_context
from conversion_webhook.settings import Settings

logger = logging.getLogger(__name__)


def create_ssl_context(cert_path: str, key_path: str) -> ssl.SSLContext:
    """
    Build the server-side TLS context from PEM files.

    Args:
        cert_path: Path to the serving certificate (chain)
        key_path: Path to the private key

    Returns:
        SSLContext for the HTTPS listener

    Raises:
        OSError: If the files are missing or unreadable
        ssl.SSLError: If the PEM material is invalid
    """
    context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
    context.load_cert_chain(certfile=cert_path, keyfile=key_path)
    return context


class WebhookServer:
    """HTTP(S) server exposing the conversion endpoint, probes and metrics."""

    def __init__(
        self,
        adapter: ConversionAdapter,
        port: int = 8443,
        host: str = "0.0.0.0",
        ssl_context: ssl.SSLContext | None = None,
        shutdown_grace_seconds: float = DEFAULT_SHUTDOWN_GRACE_SECONDS,
        readiness_drain_seconds: float = DEFAULT_READINESS_DRAIN_SECONDS,
    ):
        """
        Initialize webhook server.

        Args:
            adapter: Conversion adapter handling ConversionReview bodies
            port: Port to listen on
            host: Host interface to bind to
            ssl_context: TLS context; plain HTTP when None
            shutdown_grace_seconds: Time in-flight requests get on shutdown
            readiness_drain_seconds: Time /readyz reports 503 before the
                listener closes
        """
        self.adapter = adapter
        self.port = port
        self.host = host
        self.ssl_context = ssl_context
        self.shutdown_grace_seconds = shutdown_grace_seconds
        self.readiness_drain_seconds = readiness_drain_seconds
        self.draining = False
        self.app = Application()
        self.runner: AppRunner | None = None
        self.site: TCPSite | None = None
        self._setup_routes()

    @property
    def observer(self) -> WebhookObserver:
        return self.adapter.observer

    def _setup_routes(self) -> None:
        """Set up HTTP routes for the webhook server."""
        self.app.router.add_post(CONVERT_PATH, self._convert_handler)
        self.app.router.add_get(HEALTHZ_PATH, self._healthz_handler)
        self.app.router.add_get(READYZ_PATH, self._readyz_handler)
        self.app.router.add_get(METRICS_PATH, self._metrics_handler)

    async def _convert_handler(self, request: Request) -> Response:
        """Handle a ConversionReview POSTed by the API server.

        Always answers 200 with a ConversionReview; failures are reported in
        the response Status, never as HTTP errors.
        """
        try:
            body = await request.json()
        except ValueError as e:
            error = InvalidRequestError(f"request body is not valid JSON: {e}")
            self.observer.record_invalid_request(error, 0.0)
            return json_response(invalid_request_review(error))

        # Continue the API server's trace when it propagates one
        token = otel_context.attach(extract_trace_context(request.headers))
        try:
            review = self.adapter.review(body)
        except Exception as e:
            logger.error(f"Unexpected error handling conversion: {e}", exc_info=True)
            review = invalid_request_review(
                InvalidRequestError(f"internal error: {type(e).__name__}")
            )
        finally:
            otel_context.detach(token)

        return json_response(review)

    async def _healthz_handler(self, request: Request) -> Response:
        """Handle /healthz endpoint for the liveness probe."""
        return Response(text="ok")

    async def _readyz_handler(self, request: Request) -> Response:
        """Handle /readyz endpoint; not ready once shutdown has begun."""
        if self.draining:
            return Response(text="shutting down", status=503)
        return Response(text="ok")

    async def _metrics_handler(self, request: Request) -> Response:
        """Handle /metrics endpoint for Prometheus scraping."""
        try:
            metrics_data = self.observer.metrics.render()
            return Response(
                body=metrics_data,
                headers={"Content-Type": self.observer.metrics.content_type},
            )
        except Exception as e:
            logger.error(f"Failed to generate metrics: {e}")
            return Response(
                text=f"Error generating metrics: {type(e).__name__}. Check logs for details.",
                status=500,
            )

    async def start(self) -> None:
        """Start the webhook server."""
        self.runner = AppRunner(
            self.app, shutdown_timeout=self.shutdown_grace_seconds
        )
        await self.runner.setup()

        self.site = TCPSite(
            self.runner, self.host, self.port, ssl_context=self.ssl_context
        )
        await self.site.start()

        scheme = "https" if self.ssl_context else "http"
        logger.info(f"Conversion webhook listening on {scheme}://{self.host}:{self.port}")
        logger.info(f"Conversion endpoint available at {CONVERT_PATH}")

    async def stop(self) -> None:
        """Stop accepting requests and drain in-flight ones."""
        self.draining = True
        if self.runner:
            # Listener stays open so probes can observe the 503
            if self.readiness_drain_seconds > 0:
                logger.info(
                    f"Readiness set to not-ready; waiting {self.readiness_drain_seconds}s "
                    "before closing the listener"
                )
                await asyncio.sleep(self.readiness_drain_seconds)
            logger.info(
                f"Draining in-flight requests (grace period {self.shutdown_grace_seconds}s)"
            )
            await self.runner.cleanup()
            self.runner = None
            self.site = None
        logger.info("Conversion webhook stopped")

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.stop()


def configure_logging(settings: Settings) -> None:
    """Configure structured logging for the webhook based on settings."""
    setup_structured_logging(
        log_level=settings.log_level.upper(),
        enable_json_formatting=settings.json_logs,
        correlation_id_enabled=settings.correlation_ids,
        log_health_probes=settings.log_health_probes,
    )


def build_server(settings: Settings, observer: WebhookObserver) -> WebhookServer:
    """
    Assemble the webhook server from settings.

    Raises:
        OSError: If TLS is enabled and the certificate or key is unusable
    """
    ssl_context = None
    if settings.tls_enabled:
        ssl_context = create_ssl_context(settings.tls_cert_path, settings.tls_key_path)
        logger.info(f"Loaded TLS certificate from {settings.tls_cert_path}")
    else:
        logger.warning("TLS is disabled; serving plain HTTP")

    adapter = ConversionAdapter(api_group=settings.api_group, observer=observer)
    return WebhookServer(
        adapter,
        port=settings.port,
        host=settings.host,
        ssl_context=ssl_context,
        shutdown_grace_seconds=settings.shutdown_grace_seconds,
    )


async def serve(settings: Settings) -> None:
    """Run the webhook until SIGTERM or SIGINT, then shut down gracefully."""
    observer = build_observer(settings)
    try:
        server = build_server(settings, observer)

        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, stop_event.set)

        async with server:
            await stop_event.wait()
            logger.info("Received shutdown signal")
    finally:
        observer.shutdown()


def main() -> None:
    """
    Main entry point for the webhook.

    This function:
    1. Loads settings and configures logging
    2. Starts the HTTPS server
    3. Blocks until a termination signal, then drains and exits
    """
    settings = Settings()
    configure_logging(settings)
    logger.info("Starting AivenApplication conversion webhook...")

    try:
        asyncio.run(serve(settings))
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Webhook failed with error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
