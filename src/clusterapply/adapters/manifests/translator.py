"""Translate validated manifests into domain objects and back."""

from __future__ import annotations

from datetime import UTC
from typing import TYPE_CHECKING, Any

from clusterapply.domain.model import (
    ArtifactKind,
    ArtifactRef,
    ArtifactSource,
    Condition,
    ConditionReason,
    ConditionSeverity,
    ConditionStatus,
    ConditionType,
    Conditions,
    ObjectMeta,
    OwnerReference,
    ResourceSet,
    Target,
)
from clusterapply.domain.selectors import LabelSelector, LabelSelectorRequirement

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from .schema import (
        ClusterManifest,
        ConditionPayload,
        ConfigMapManifest,
        LabelSelectorPayload,
        ObjectMetaPayload,
        ResourceSetManifest,
        SecretManifest,
    )


def parse_object_meta(payload: ObjectMetaPayload) -> ObjectMeta:
    return ObjectMeta(
        name=payload.name,
        namespace=payload.namespace,
        uid=payload.uid,
        labels=dict(payload.labels),
        annotations=dict(payload.annotations),
        owner_references=tuple(
            OwnerReference(
                api_version=ref.api_version,
                kind=ref.kind,
                name=ref.name,
                uid=ref.uid,
            )
            for ref in payload.owner_references
        ),
        deletion_timestamp=payload.deletion_timestamp,
    )


def parse_label_selector(payload: LabelSelectorPayload | None) -> LabelSelector | None:
    if payload is None:
        return None
    return LabelSelector(
        match_labels=dict(payload.match_labels),
        match_expressions=tuple(
            LabelSelectorRequirement(
                key=expression.key,
                operator=expression.operator,
                values=tuple(expression.values),
            )
            for expression in payload.match_expressions
        ),
    )


def _artifact_kind(value: str) -> ArtifactKind | str:
    try:
        return ArtifactKind(value)
    except ValueError:
        return value


def _parse_condition(payload: ConditionPayload) -> Condition | None:
    try:
        condition_type = ConditionType(payload.type)
        status = ConditionStatus(payload.status)
        severity = ConditionSeverity(payload.severity)
        reason = ConditionReason(payload.reason) if payload.reason else None
    except ValueError:
        # conditions written by other controllers are not ours to track
        return None
    return Condition(
        type=condition_type,
        status=status,
        severity=severity,
        reason=reason,
        message=payload.message,
        last_transition_time=payload.last_transition_time,
    )


def _parse_conditions(payloads: Iterable[ConditionPayload]) -> Conditions:
    conditions = Conditions()
    for payload in payloads:
        condition = _parse_condition(payload)
        if condition is not None:
            conditions.set(condition)
    return conditions


def parse_resource_set(manifest: ResourceSetManifest) -> ResourceSet:
    status = manifest.status
    return ResourceSet(
        meta=parse_object_meta(manifest.metadata),
        selector=parse_label_selector(manifest.spec.cluster_selector),
        resources=tuple(
            ArtifactRef(kind=_artifact_kind(ref.kind), name=ref.name)
            for ref in manifest.spec.resources
        ),
        strategy=manifest.spec.strategy,
        conditions=_parse_conditions(status.conditions if status is not None else ()),
    )


def parse_target(manifest: ClusterManifest) -> Target:
    return Target(meta=parse_object_meta(manifest.metadata), endpoint=manifest.spec.endpoint)


def parse_artifact_source(manifest: ConfigMapManifest | SecretManifest) -> ArtifactSource:
    subtype = manifest.type if manifest.kind == ArtifactKind.SECRET else None
    return ArtifactSource(
        kind=ArtifactKind(manifest.kind),
        meta=parse_object_meta(manifest.metadata),
        subtype=subtype,
        data=dict(manifest.data) if manifest.data is not None else None,
    )


def condition_to_manifest(condition: Condition) -> dict[str, Any]:
    manifest: dict[str, Any] = {
        "type": condition.type.value,
        "status": condition.status.value,
    }
    if condition.severity is not ConditionSeverity.NONE:
        manifest["severity"] = condition.severity.value
    if condition.reason is not None:
        manifest["reason"] = condition.reason.value
    if condition.message:
        manifest["message"] = condition.message
    if condition.last_transition_time is not None:
        timestamp = condition.last_transition_time.astimezone(UTC)
        manifest["lastTransitionTime"] = timestamp.strftime("%Y-%m-%dT%H:%M:%SZ")
    return manifest


def resource_set_status_patch(
    resource_set: ResourceSet,
    existing_conditions: Iterable[Mapping[str, Any]] = (),
) -> dict[str, Any]:
    """Merge patch replacing the status conditions of ``resource_set``.

    Entries of ``existing_conditions`` whose type is not a ``ConditionType``
    belong to other writers and are carried over ahead of ours.
    """

    owned = {condition_type.value for condition_type in ConditionType}
    foreign = [
        dict(condition) for condition in existing_conditions if condition.get("type") not in owned
    ]
    return {
        "status": {
            "conditions": [
                *foreign,
                *(condition_to_manifest(condition) for condition in resource_set.conditions),
            ]
        }
    }
