"""
Observability utilities for the conversion webhook.

This module provides metrics, tracing, and structured logging capabilities
for production monitoring and troubleshooting.
"""

from .logging import WebhookLogger, setup_structured_logging
from .metrics import ConversionMetrics
from .observer import RequestTracker, WebhookObserver, build_observer

__all__ = [
    "ConversionMetrics",
    "RequestTracker",
    "WebhookLogger",
    "WebhookObserver",
    "build_observer",
    "setup_structured_logging",
]
