"""
Conversion engine for AivenApplication resources.

The migration transform rewrites a single object to a target version; the
adapter applies it to a whole ConversionReview batch.
"""

from .adapter import ConversionAdapter
from .migration import migrate
from .versions import ApiVersion, resolve_source_version, resolve_target_version

__all__ = [
    "ApiVersion",
    "ConversionAdapter",
    "migrate",
    "resolve_source_version",
    "resolve_target_version",
]
