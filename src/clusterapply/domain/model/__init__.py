"""Domain model package."""

from __future__ import annotations

from .bindings import ResourceBinding, ResourceSetBinding, TargetBinding
from .conditions import Condition, Conditions
from .enums import (
    ApplyStrategy,
    ArtifactKind,
    ConditionReason,
    ConditionSeverity,
    ConditionStatus,
    ConditionType,
)
from .objects import ObjectKey, ObjectMeta, OwnerReference
from .resources import (
    PAUSED_ANNOTATION,
    RESOURCE_SET_API_VERSION,
    RESOURCE_SET_KIND,
    RESOURCE_SET_SECRET_TYPE,
    TARGET_API_VERSION,
    TARGET_KIND,
    ArtifactRef,
    ArtifactSource,
    ResolvedArtifact,
    ResourceSet,
    Target,
)

__all__ = [
    "PAUSED_ANNOTATION",
    "RESOURCE_SET_API_VERSION",
    "RESOURCE_SET_KIND",
    "RESOURCE_SET_SECRET_TYPE",
    "TARGET_API_VERSION",
    "TARGET_KIND",
    "ApplyStrategy",
    "ArtifactKind",
    "ArtifactRef",
    "ArtifactSource",
    "Condition",
    "ConditionReason",
    "ConditionSeverity",
    "ConditionStatus",
    "ConditionType",
    "Conditions",
    "ObjectKey",
    "ObjectMeta",
    "OwnerReference",
    "ResolvedArtifact",
    "ResourceBinding",
    "ResourceSet",
    "ResourceSetBinding",
    "Target",
    "TargetBinding",
]
