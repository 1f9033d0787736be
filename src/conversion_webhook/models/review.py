"""
Pydantic models for the Kubernetes ConversionReview envelope.

These mirror ``apiextensions.k8s.io/v1`` ConversionReview, ConversionRequest
and ConversionResponse, plus the subset of ``metav1.Status`` used to report
the conversion result.
"""

from typing import Any

from pydantic import BaseModel, Field

from conversion_webhook.constants import (
    CONVERSION_REVIEW_KIND,
    DEFAULT_REVIEW_API_VERSION,
    STATUS_SUCCESS,
)


class Status(BaseModel):
    """Result of a conversion (subset of metav1.Status)."""

    model_config = {"populate_by_name": True}

    status: str = Field(STATUS_SUCCESS, description="Success or Failure")
    message: str | None = Field(None, description="Human-readable description")
    reason: str | None = Field(None, description="Machine-readable reason code")


class ConversionRequest(BaseModel):
    """Batch of objects the API server wants converted to one version."""

    model_config = {"populate_by_name": True, "frozen": True}

    uid: str = Field(..., description="Correlation token echoed in the response")
    desired_api_version: str = Field(
        ...,
        alias="desiredAPIVersion",
        description="Version the objects should be converted to",
    )
    objects: list[dict[str, Any]] = Field(
        ..., description="Raw objects to convert, in order"
    )


class ConversionResponse(BaseModel):
    """Converted objects or a failure Status for one ConversionRequest."""

    model_config = {"populate_by_name": True}

    uid: str = Field(..., description="uid of the request being answered")
    result: Status = Field(default_factory=Status)
    converted_objects: list[dict[str, Any]] = Field(
        default_factory=list,
        alias="convertedObjects",
        description="Converted objects, aligned 1:1 with the request objects",
    )

    @property
    def succeeded(self) -> bool:
        return self.result.status == STATUS_SUCCESS

    def to_wire(self) -> dict[str, Any]:
        # exclude_none must not reach into the converted objects
        return {
            "uid": self.uid,
            "result": self.result.model_dump(exclude_none=True),
            "convertedObjects": self.converted_objects,
        }


class ConversionReview(BaseModel):
    """Envelope exchanged with the API server on the conversion endpoint."""

    model_config = {"populate_by_name": True}

    api_version: str = Field(DEFAULT_REVIEW_API_VERSION, alias="apiVersion")
    kind: str = Field(CONVERSION_REVIEW_KIND)
    request: ConversionRequest | None = None
    response: ConversionResponse | None = None

    def to_wire(self) -> dict[str, Any]:
        """Serialize with Kubernetes field names, omitting unset parts."""
        wire: dict[str, Any] = {"apiVersion": self.api_version, "kind": self.kind}
        if self.request is not None:
            wire["request"] = self.request.model_dump(by_alias=True)
        if self.response is not None:
            wire["response"] = self.response.to_wire()
        return wire
