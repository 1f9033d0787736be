"""
Constants used throughout the conversion webhook.

This module defines all constant values used by the webhook including:
- The CRD API group and supported versions
- Sub-resource keys that own their own secret name
- Kubernetes ConversionReview envelope values
- Reason codes surfaced in failure Status objects
"""

# CRD identification
DEFAULT_API_GROUP = "aivenapplications.aiven.nais.io"
VERSION_V1 = "v1"
VERSION_V2 = "v2"
SUPPORTED_VERSIONS = frozenset({VERSION_V1, VERSION_V2})

# Sub-resources that own a secretName in v2
SUB_RESOURCE_KEYS = ("kafka", "openSearch")

# ConversionReview envelope
CONVERSION_REVIEW_KIND = "ConversionReview"
DEFAULT_REVIEW_API_VERSION = "apiextensions.k8s.io/v1"

# Status values (metav1.Status)
STATUS_SUCCESS = "Success"
STATUS_FAILURE = "Failure"

# Reason codes
REASON_INVALID_REQUEST = "InvalidRequest"
REASON_UNSUPPORTED_TARGET = "UnsupportedTarget"
REASON_MALFORMED_VERSION = "MalformedVersion"
REASON_INVALID_SPEC_SHAPE = "InvalidSpecShape"
REASON_UNSUPPORTED_SOURCE_VERSION = "UnsupportedSourceVersion"
REASON_CONVERSION_FAILED = "ConversionFailed"

# HTTP routes
CONVERT_PATH = "/convert"
HEALTHZ_PATH = "/healthz"
READYZ_PATH = "/readyz"
METRICS_PATH = "/metrics"

# Default grace period for in-flight requests on shutdown (seconds)
DEFAULT_SHUTDOWN_GRACE_SECONDS = 30.0
DEFAULT_READINESS_DRAIN_SECONDS = 5.0
