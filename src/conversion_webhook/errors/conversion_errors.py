"""
Conversion error hierarchy with reason codes.

This module defines the error types raised while converting AivenApplication
objects, providing the reason code and human-readable message that are
returned to the API server inside a failure Status.
"""

from typing import Any

from conversion_webhook.constants import (
    REASON_CONVERSION_FAILED,
    REASON_INVALID_REQUEST,
    REASON_INVALID_SPEC_SHAPE,
    REASON_MALFORMED_VERSION,
    REASON_UNSUPPORTED_SOURCE_VERSION,
    REASON_UNSUPPORTED_TARGET,
    STATUS_FAILURE,
)


class ConversionError(Exception):
    """
    Base error class for all conversion-related exceptions.

    Carries the reason code surfaced to the caller and, where known, the
    JSON path of the offending field.
    """

    reason: str = REASON_CONVERSION_FAILED

    def __init__(self, message: str, field: str | None = None):
        """
        Initialize conversion error.

        Args:
            message: Human-readable error description
            field: Path of the offending field (e.g. "spec.kafka")
        """
        if field:
            message = f"{field}: {message}"
        super().__init__(message)
        self.message = message
        self.field = field

    def as_status(self) -> dict[str, Any]:
        """Convert to a Kubernetes Status failure payload."""
        return {
            "status": STATUS_FAILURE,
            "message": self.message,
            "reason": self.reason,
        }


class InvalidRequestError(ConversionError):
    """The inbound envelope could not be decoded into a conversion request."""

    reason = REASON_INVALID_REQUEST


class UnsupportedTargetVersionError(ConversionError):
    """desiredAPIVersion names a version this webhook does not implement."""

    reason = REASON_UNSUPPORTED_TARGET

    def __init__(self, desired_api_version: Any):
        super().__init__(
            f"unsupported desired API version {desired_api_version!r}"
        )
        self.desired_api_version = desired_api_version


class MalformedVersionError(ConversionError):
    """An object's own apiVersion is missing or not a string."""

    reason = REASON_MALFORMED_VERSION

    def __init__(self, message: str = "apiVersion is missing or not a string"):
        super().__init__(message, field="apiVersion")


class InvalidSpecShapeError(ConversionError):
    """spec or one of its tracked sub-keys exists but is not a JSON object."""

    reason = REASON_INVALID_SPEC_SHAPE


class UnsupportedSourceVersionError(ConversionError):
    """An object declares a version the transform does not recognize."""

    reason = REASON_UNSUPPORTED_SOURCE_VERSION

    def __init__(self, api_version: str):
        super().__init__(f"unsupported source version {api_version!r}", field="apiVersion")
        self.api_version = api_version


class BatchConversionError(ConversionError):
    """
    Batch failure wrapping the first per-object error encountered.

    The batch is all-or-nothing, so a single failing object voids the whole
    response.
    """

    reason = REASON_CONVERSION_FAILED

    def __init__(self, index: int, cause: ConversionError):
        super().__init__(
            f"failed to convert object at index {index} ({cause.reason}): {cause.message}"
        )
        self.index = index
        self.cause = cause
