"""
Version migration for AivenApplication objects.

v1 keeps a single ``spec.secretName`` for every service; v2 moves it into
each configured sub-resource (``spec.kafka``, ``spec.openSearch``). Going
back to v1 is a pure version bump, since the v1 schema accepts v2 specs.

``migrate`` never mutates its input: it works on a deep copy and returns it.
"""

import copy
import logging
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from conversion_webhook.constants import (
    DEFAULT_API_GROUP,
    SUB_RESOURCE_KEYS,
    VERSION_V1,
    VERSION_V2,
)
from conversion_webhook.errors import InvalidSpecShapeError
from conversion_webhook.models import AivenApplicationSpec

from .versions import resolve_source_version, resolve_target_version

logger = logging.getLogger(__name__)


def _describe_spec_error(error: ValidationError) -> InvalidSpecShapeError:
    first = error.errors()[0]
    path = ".".join(["spec", *(str(part) for part in first["loc"])])
    return InvalidSpecShapeError(first["msg"], field=path)


def _relocate_secret_name(obj: dict[str, Any]) -> None:
    """Move ``spec.secretName`` into every sub-resource that lacks one."""
    if "spec" not in obj:
        return

    spec = obj["spec"]
    if not isinstance(spec, dict):
        raise InvalidSpecShapeError("must be an object", field="spec")

    try:
        typed_spec = AivenApplicationSpec.from_manifest(spec)
    except ValidationError as e:
        raise _describe_spec_error(e) from e

    if typed_spec.is_present("secretName"):
        secret_name = typed_spec.pop_secret_name()
        for key in SUB_RESOURCE_KEYS:
            sub_resource = typed_spec.sub_resource(key)
            # Absent sub-resources are not created; explicit values win
            if sub_resource is not None and not sub_resource.is_present("secretName"):
                sub_resource.set_secret_name(secret_name)

    obj["spec"] = typed_spec.to_manifest(spec)


def _to_v1(obj: dict[str, Any], source_version: str) -> None:
    """v2 -> v1: backward compatible, nothing to relocate."""


def _to_v2(obj: dict[str, Any], source_version: str) -> None:
    """v1 -> v2 (and v2 -> v2, which is a no-op once secretName is gone)."""
    _relocate_secret_name(obj)


_MIGRATIONS: dict[str, Callable[[dict[str, Any], str], None]] = {
    VERSION_V1: _to_v1,
    VERSION_V2: _to_v2,
}


def migrate(
    obj: dict[str, Any],
    desired_api_version: str,
    api_group: str = DEFAULT_API_GROUP,
) -> dict[str, Any]:
    """
    Convert one object to the desired API version.

    Args:
        obj: Raw object as sent by the API server
        desired_api_version: Target apiVersion ("v2" or "<group>/v2")
        api_group: API group the object must belong to

    Returns:
        A new object with ``apiVersion`` set to ``desired_api_version``

    Raises:
        UnsupportedTargetVersionError: If the target version is not supported
        MalformedVersionError: If the object's apiVersion is missing or invalid
        UnsupportedSourceVersionError: If the object's version is not supported
        InvalidSpecShapeError: If spec or a sub-resource is not an object
    """
    target_version = resolve_target_version(desired_api_version, api_group)
    source_version = resolve_source_version(obj.get("apiVersion"), api_group)

    converted = copy.deepcopy(obj)
    _MIGRATIONS[target_version](converted, source_version)
    converted["apiVersion"] = desired_api_version

    logger.debug(f"Converted object from {source_version} to {target_version}")
    return converted
