"""Pydantic models describing the manifests held by the object store."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from clusterapply.domain.model import (
    RESOURCE_SET_KIND,
    TARGET_KIND,
    ApplyStrategy,
    ArtifactKind,
)


class ManifestBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class OwnerReferencePayload(ManifestBaseModel):
    api_version: str = Field(alias="apiVersion")
    kind: str
    name: str
    uid: str = ""


class ObjectMetaPayload(ManifestBaseModel):
    name: str = Field(min_length=1)
    namespace: str = "default"
    uid: str = ""
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)
    owner_references: list[OwnerReferencePayload] = Field(
        default_factory=list, alias="ownerReferences"
    )
    deletion_timestamp: datetime | None = Field(default=None, alias="deletionTimestamp")

    @field_validator("labels", "annotations", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return {} if value is None else value


class LabelSelectorRequirementPayload(ManifestBaseModel):
    key: str
    operator: str
    values: list[str] = Field(default_factory=list)


class LabelSelectorPayload(ManifestBaseModel):
    match_labels: dict[str, str] = Field(default_factory=dict, alias="matchLabels")
    match_expressions: list[LabelSelectorRequirementPayload] = Field(
        default_factory=list, alias="matchExpressions"
    )


class ResourceRefPayload(ManifestBaseModel):
    # kept as a plain string: unknown kinds are skipped during reconciliation
    kind: str
    name: str = Field(min_length=1)


class ConditionPayload(ManifestBaseModel):
    type: str
    status: str
    severity: str = ""
    reason: str | None = None
    message: str = ""
    last_transition_time: datetime | None = Field(default=None, alias="lastTransitionTime")


class ResourceSetSpecPayload(ManifestBaseModel):
    cluster_selector: LabelSelectorPayload | None = Field(default=None, alias="clusterSelector")
    resources: list[ResourceRefPayload] = Field(default_factory=list)
    strategy: ApplyStrategy = ApplyStrategy.APPLY_ONCE


class ResourceSetStatusPayload(ManifestBaseModel):
    conditions: list[ConditionPayload] = Field(default_factory=list)


class ResourceSetManifest(ManifestBaseModel):
    api_version: str = Field(alias="apiVersion")
    kind: Literal["ResourceSet"] = RESOURCE_SET_KIND
    metadata: ObjectMetaPayload
    spec: ResourceSetSpecPayload = Field(default_factory=ResourceSetSpecPayload)
    status: ResourceSetStatusPayload | None = None


class ClusterSpecPayload(ManifestBaseModel):
    endpoint: str | None = None


class ClusterManifest(ManifestBaseModel):
    api_version: str = Field(alias="apiVersion")
    kind: Literal["Cluster"] = TARGET_KIND
    metadata: ObjectMetaPayload
    spec: ClusterSpecPayload = Field(default_factory=ClusterSpecPayload)


class ConfigMapManifest(ManifestBaseModel):
    api_version: str = Field(default="v1", alias="apiVersion")
    kind: Literal["ConfigMap"] = ArtifactKind.CONFIG_MAP.value
    metadata: ObjectMetaPayload
    # values stay untyped so malformed entries surface per key during apply
    data: dict[str, Any] | None = None


class SecretManifest(ManifestBaseModel):
    api_version: str = Field(default="v1", alias="apiVersion")
    kind: Literal["Secret"] = ArtifactKind.SECRET.value
    metadata: ObjectMetaPayload
    type: str | None = None
    data: dict[str, Any] | None = None


type Manifest = ResourceSetManifest | ClusterManifest | ConfigMapManifest | SecretManifest

MANIFEST_MODELS: dict[str, type[Manifest]] = {
    RESOURCE_SET_KIND: ResourceSetManifest,
    TARGET_KIND: ClusterManifest,
    ArtifactKind.CONFIG_MAP.value: ConfigMapManifest,
    ArtifactKind.SECRET.value: SecretManifest,
}
