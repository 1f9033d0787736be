"""
API version parsing for AivenApplication objects.

Kubernetes sends group-qualified versions (``aivenapplications.aiven.nais.io/v2``)
while tests and hand-written manifests often use the bare version (``v2``).
Both forms are accepted as long as the group, when present, is ours.
"""

import logging
from dataclasses import dataclass
from typing import Any

from conversion_webhook.constants import DEFAULT_API_GROUP, SUPPORTED_VERSIONS
from conversion_webhook.errors import (
    MalformedVersionError,
    UnsupportedSourceVersionError,
    UnsupportedTargetVersionError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApiVersion:
    """A parsed ``apiVersion`` value."""

    group: str | None
    version: str

    @classmethod
    def parse(cls, value: Any) -> "ApiVersion":
        """
        Parse an apiVersion string.

        Args:
            value: Raw apiVersion value from a manifest

        Returns:
            Parsed ApiVersion

        Raises:
            MalformedVersionError: If the value is not a "version" or
                "group/version" string
        """
        if not isinstance(value, str) or not value.strip():
            raise MalformedVersionError()

        group, sep, version = value.strip().rpartition("/")
        if sep and (not group or "/" in group):
            raise MalformedVersionError(f"cannot parse apiVersion {value!r}")
        if not version:
            raise MalformedVersionError(f"cannot parse apiVersion {value!r}")

        return cls(group=group or None, version=version)

    def belongs_to(self, api_group: str) -> bool:
        return self.group is None or self.group == api_group


def resolve_source_version(value: Any, api_group: str = DEFAULT_API_GROUP) -> str:
    """
    Resolve the declared version of an object being converted.

    Raises:
        MalformedVersionError: If apiVersion is missing or unparsable
        UnsupportedSourceVersionError: If the group or version is not ours
    """
    parsed = ApiVersion.parse(value)
    if not parsed.belongs_to(api_group) or parsed.version not in SUPPORTED_VERSIONS:
        raise UnsupportedSourceVersionError(value)
    return parsed.version


def resolve_target_version(value: Any, api_group: str = DEFAULT_API_GROUP) -> str:
    """
    Resolve the desired version of a conversion request.

    Any problem with the value, including it being unparsable, is reported
    as an unsupported target.

    Raises:
        UnsupportedTargetVersionError: If the value does not name a supported
            version of our group
    """
    try:
        parsed = ApiVersion.parse(value)
    except MalformedVersionError as e:
        raise UnsupportedTargetVersionError(value) from e

    if not parsed.belongs_to(api_group) or parsed.version not in SUPPORTED_VERSIONS:
        logger.debug(f"Rejecting desired API version {value!r}")
        raise UnsupportedTargetVersionError(value)
    return parsed.version
