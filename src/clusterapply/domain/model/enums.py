"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class ArtifactKind(StrEnum):
    """Closed set of artifact kinds a resource set may reference."""

    CONFIG_MAP = "ConfigMap"
    SECRET = "Secret"


class ApplyStrategy(StrEnum):
    APPLY_ONCE = "ApplyOnce"


class ConditionType(StrEnum):
    RESOURCES_APPLIED = "ResourcesApplied"


class ConditionStatus(StrEnum):
    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


class ConditionSeverity(StrEnum):
    NONE = ""
    ERROR = "Error"
    WARNING = "Warning"
    INFO = "Info"


class ConditionReason(StrEnum):
    """Public failure taxonomy reported on the resource set status."""

    CLUSTER_MATCH_FAILED = "ClusterMatchFailed"
    REMOTE_CLIENT_FAILED = "RemoteClientFailed"
    WRONG_ARTIFACT_SUBTYPE = "WrongArtifactSubtype"
    RETRIEVING_ARTIFACT_FAILED = "RetrievingArtifactFailed"
    APPLY_FAILED = "ApplyFailed"
