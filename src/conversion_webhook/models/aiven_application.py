"""
Pydantic models for the AivenApplication spec.

Only the fields touched by version migration are modelled explicitly. Every
other key is captured as a pydantic extra and written back verbatim, in its
original position, so a round-trip through these models never loses data.

Declared fields are emitted only when their manifest key was present in the
input (or was assigned afterwards). Pydantic's own ``model_fields_set`` cannot
tell a declared field apart from an extra key spelled like its Python name
(``open_search`` vs ``openSearch``), so presence is tracked by manifest key.
"""

from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    field_validator,
    model_validator,
)


def _restore_key_order(original: dict[str, Any], dumped: dict[str, Any]) -> dict[str, Any]:
    """Order ``dumped`` like ``original``; keys new in ``dumped`` go last."""
    ordered = {key: dumped[key] for key in original if key in dumped}
    for key, value in dumped.items():
        if key not in ordered:
            ordered[key] = value
    return ordered


class ManifestModel(BaseModel):
    """Base for typed views over a JSON object that must round-trip exactly."""

    model_config = ConfigDict(extra="allow")

    _present: set[str] = PrivateAttr(default_factory=set)

    @model_validator(mode="wrap")
    @classmethod
    def record_present_keys(cls, data: Any, handler: Any) -> Any:
        model = handler(data)
        if isinstance(data, dict):
            model._present = {
                key for key in cls.manifest_keys().values() if key in data
            }
        return model

    @classmethod
    def manifest_keys(cls) -> dict[str, str]:
        """Map declared field names to their manifest keys."""
        return {name: field.alias or name for name, field in cls.model_fields.items()}

    def is_present(self, key: str) -> bool:
        """Whether the declared field with manifest ``key`` will be emitted."""
        return key in self._present

    def to_manifest(self, original: dict[str, Any]) -> dict[str, Any]:
        """Dump back to a plain dict, keeping the key order of ``original``."""
        manifest = dict(self.model_extra or {})
        for name, key in self.manifest_keys().items():
            if key not in self._present:
                continue
            value = getattr(self, name)
            if isinstance(value, ManifestModel):
                nested = original.get(key)
                value = value.to_manifest(nested if isinstance(nested, dict) else {})
            manifest[key] = value
        return _restore_key_order(original, manifest)


class SubResource(ManifestModel):
    """Per-service configuration block (``spec.kafka``, ``spec.openSearch``)."""

    # Any JSON value; only its presence matters to the migration
    secret_name: Any = Field(
        None,
        alias="secretName",
        description="Name of the secret holding this service's credentials",
    )

    def set_secret_name(self, value: Any) -> None:
        self.secret_name = value
        self._present.add("secretName")


class AivenApplicationSpec(ManifestModel):
    """
    Typed view of ``spec`` for an AivenApplication.

    ``secretName`` at the root is the v1 layout; v2 moves it into the
    sub-resources listed in ``SUB_RESOURCE_KEYS``.
    """

    secret_name: Any = Field(
        None,
        alias="secretName",
        description="Root secret name (v1 only)",
    )
    kafka: SubResource | None = Field(None, description="Kafka configuration")
    open_search: SubResource | None = Field(
        None, alias="openSearch", description="OpenSearch configuration"
    )

    @field_validator("kafka", "open_search", mode="before")
    @classmethod
    def validate_sub_resource_not_null(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("must be an object, not null")
        return v

    @classmethod
    def from_manifest(cls, spec: dict[str, Any]) -> "AivenApplicationSpec":
        return cls.model_validate(spec)

    def pop_secret_name(self) -> Any:
        """Remove the root secretName and return it (None if absent)."""
        secret_name = self.secret_name
        self.secret_name = None
        self._present.discard("secretName")
        return secret_name

    def sub_resource(self, key: str) -> SubResource | None:
        """Look up a sub-resource by its manifest key."""
        for name, manifest_key in self.manifest_keys().items():
            if manifest_key == key:
                return getattr(self, name)
        raise KeyError(key)
