"""
Error handling module for the conversion webhook.

This module provides the error hierarchy raised by the migration transform
and the conversion adapter. Every error carries the machine-readable reason
code that ends up in the ConversionReview failure Status.
"""

from .conversion_errors import (
    BatchConversionError,
    ConversionError,
    InvalidRequestError,
    InvalidSpecShapeError,
    MalformedVersionError,
    UnsupportedSourceVersionError,
    UnsupportedTargetVersionError,
)

__all__ = [
    "ConversionError",
    "InvalidRequestError",
    "UnsupportedTargetVersionError",
    "MalformedVersionError",
    "InvalidSpecShapeError",
    "UnsupportedSourceVersionError",
    "BatchConversionError",
]
