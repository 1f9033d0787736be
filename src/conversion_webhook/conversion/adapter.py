"""
ConversionReview adapter for AivenApplication resources.

The adapter unwraps the ConversionReview sent by the API server, validates
the desired version up front, runs every object through the migration
transform and wraps the result back into a ConversionReview.

Batches are all-or-nothing: if any object fails, the whole response is a
failure carrying the first error, and no converted objects are returned.
"""

import time
from typing import Any

from pydantic import ValidationError

from conversion_webhook.constants import DEFAULT_API_GROUP
from conversion_webhook.errors import (
    BatchConversionError,
    ConversionError,
    InvalidRequestError,
)
from conversion_webhook.models import (
    ConversionRequest,
    ConversionResponse,
    ConversionReview,
    Status,
)
from conversion_webhook.observability import WebhookObserver

from .migration import migrate
from .versions import resolve_target_version


def failure_response(uid: str, error: ConversionError) -> ConversionResponse:
    """Build a failed ConversionResponse for ``error``."""
    return ConversionResponse(uid=uid, result=Status(**error.as_status()))


def invalid_request_review(
    error: ConversionError, api_version: str | None = None
) -> dict[str, Any]:
    """Build the ConversionReview returned when no request could be decoded."""
    review = ConversionReview(response=failure_response("", error))
    if api_version:
        review.api_version = api_version
    return review.to_wire()


class ConversionAdapter:
    """Converts ConversionReview batches between AivenApplication versions."""

    def __init__(
        self,
        api_group: str = DEFAULT_API_GROUP,
        observer: WebhookObserver | None = None,
    ):
        """
        Initialize the conversion adapter.

        Args:
            api_group: API group of the converted resource
            observer: Logging/metrics/tracing sinks (an isolated default if omitted)
        """
        self.api_group = api_group
        self.observer = observer or WebhookObserver()

    @staticmethod
    def parse_review(body: Any) -> ConversionReview:
        """
        Decode a ConversionReview carrying a request.

        Args:
            body: Decoded JSON body of the HTTP request

        Returns:
            The parsed ConversionReview

        Raises:
            InvalidRequestError: If the body is not a well-formed ConversionReview
        """
        try:
            review = ConversionReview.model_validate(body)
        except ValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first["loc"]) or "body"
            raise InvalidRequestError(first["msg"], field=location) from e

        return review

    def review(self, body: Any) -> dict[str, Any]:
        """
        Handle a raw ConversionReview body and return the response envelope.

        Always returns a well-formed ConversionReview, even when the body
        cannot be decoded.

        Args:
            body: Decoded JSON body of the HTTP request

        Returns:
            ConversionReview response as a JSON-ready dict
        """
        started = time.perf_counter()
        try:
            review = self.parse_review(body)
            request = review.request
            if request is None:
                raise InvalidRequestError("ConversionReview has no request")
        except InvalidRequestError as e:
            self.observer.record_invalid_request(e, time.perf_counter() - started)
            api_version = body.get("apiVersion") if isinstance(body, dict) else None
            return invalid_request_review(
                e, api_version if isinstance(api_version, str) else None
            )

        response = self.convert(request)
        return ConversionReview(
            api_version=review.api_version, response=response
        ).to_wire()

    def convert(self, request: ConversionRequest) -> ConversionResponse:
        """
        Convert every object of a request to its desired version.

        Args:
            request: Decoded ConversionRequest

        Returns:
            Success with the converted objects in request order, or a failure
            carrying the reason code of the first error
        """
        with self.observer.track_request(request) as tracker:
            try:
                target_version = resolve_target_version(
                    request.desired_api_version, self.api_group
                )
            except ConversionError as e:
                tracker.fail(e)
                return failure_response(request.uid, e)

            try:
                converted = self._convert_objects(request)
            except BatchConversionError as e:
                tracker.fail(e, target_version)
                return failure_response(request.uid, e)

            tracker.succeed(target_version, len(converted))
            return ConversionResponse(uid=request.uid, converted_objects=converted)

    def _convert_objects(self, request: ConversionRequest) -> list[dict[str, Any]]:
        converted = []
        for index, obj in enumerate(request.objects):
            try:
                converted.append(
                    migrate(obj, request.desired_api_version, self.api_group)
                )
            except ConversionError as e:
                # First failure voids the batch
                raise BatchConversionError(index, e) from e
        return converted
