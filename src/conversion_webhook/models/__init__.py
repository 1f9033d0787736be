"""Pydantic models for conversion reviews and AivenApplication specs."""

from .aiven_application import AivenApplicationSpec, SubResource
from .review import ConversionRequest, ConversionResponse, ConversionReview, Status

__all__ = [
    "AivenApplicationSpec",
    "SubResource",
    "ConversionReview",
    "ConversionRequest",
    "ConversionResponse",
    "Status",
]
