"""Apply the artifacts of a resource set to one target.

Each artifact ref is processed independently and in list order:

1) skip refs the binding already records as applied
2) resolve the artifact source and validate it
3) record a provisional binding (empty hash, not applied)
4) tag the source with an owner back-reference to the resource set
5) order content by key and decode it into raw blobs
6) apply every blob, never stopping at the first failure
7) record the final binding with the content hash

Failures are collected rather than raised so that one broken artifact never
prevents its siblings from being applied.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from clusterapply.domain.errors import (
    AggregateReconcileError,
    ApplyFailedError,
    ArtifactRetrievalError,
    ClientAcquisitionError,
    OwnerTagError,
    PassCancelledError,
    ReconcileError,
    UnsupportedArtifactSubtypeError,
)
from clusterapply.domain.model import (
    ConditionReason,
    ConditionSeverity,
    ConditionType,
    ResourceBinding,
)

from .bindings import binding_scope
from .fingerprint import compute_hash, ordered_blobs
from .resolve import ArtifactResolver

if TYPE_CHECKING:
    from collections.abc import Callable

    from clusterapply.domain.model import (
        ArtifactRef,
        ArtifactSource,
        ResourceSet,
        ResourceSetBinding,
        Target,
    )
    from clusterapply.domain.ports import (
        ApplyOperation,
        BindingUnitOfWork,
        ObjectStore,
        RemoteClient,
        TargetClientProvider,
    )

    from .context import PassContext

log = getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class ApplyEngine:
    store: ObjectStore
    client_provider: TargetClientProvider
    apply_operation: ApplyOperation
    unit_of_work_factory: Callable[[], BindingUnitOfWork]
    clock: Callable[[], datetime] = field(default=_utcnow)

    def apply_to_target(
        self,
        target: Target,
        resource_set: ResourceSet,
        *,
        context: PassContext | None = None,
    ) -> None:
        """Apply every pending artifact of ``resource_set`` to ``target``.

        Raises ``ClientAcquisitionError`` before any artifact work when the
        target is unreachable, and ``AggregateReconcileError`` with every
        collected failure once all refs have been attempted. A cancellation
        after earlier failures is raised as the last error of the aggregate.
        """

        log.info("Applying resource set %s to target %s", resource_set.key, target.key)

        try:
            client = self.client_provider.get_client(target)
        except Exception as exc:
            error = (
                exc
                if isinstance(exc, ClientAcquisitionError)
                else ClientAcquisitionError(f"failed to get client for target {target.key}: {exc}")
            )
            resource_set.conditions.mark_false(
                ConditionType.RESOURCES_APPLIED,
                ConditionReason.REMOTE_CLIENT_FAILED,
                ConditionSeverity.ERROR,
                str(error),
            )
            if error is exc:
                raise
            raise error from exc

        resolver = ArtifactResolver(self.store)
        errors: list[ReconcileError] = []
        with binding_scope(self.unit_of_work_factory, target, resource_set) as binding:
            for ref in resource_set.resources:
                if context is not None:
                    try:
                        context.raise_if_done()
                    except PassCancelledError as exc:
                        if not errors:
                            raise
                        raise AggregateReconcileError([*errors, exc]) from exc
                if binding.is_applied(ref):
                    continue
                errors.extend(
                    self._apply_artifact(
                        ref,
                        target=target,
                        resource_set=resource_set,
                        binding=binding,
                        client=client,
                        resolver=resolver,
                    )
                )

        if errors:
            raise AggregateReconcileError(errors)

        resource_set.conditions.mark_true(ConditionType.RESOURCES_APPLIED)

    def _apply_artifact(
        self,
        ref: ArtifactRef,
        *,
        target: Target,
        resource_set: ResourceSet,
        binding: ResourceSetBinding,
        client: RemoteClient,
        resolver: ArtifactResolver,
    ) -> list[ReconcileError]:
        try:
            artifact = resolver.resolve(ref, target.meta.namespace)
        except UnsupportedArtifactSubtypeError as exc:
            log.warning("Artifact %s has an unsupported subtype: %s", ref, exc)
            self._mark_false(resource_set, ConditionReason.WRONG_ARTIFACT_SUBTYPE, exc)
            return [exc]
        except ArtifactRetrievalError as exc:
            log.warning("Failed to retrieve artifact %s: %s", ref, exc)
            self._mark_false(resource_set, ConditionReason.RETRIEVING_ARTIFACT_FAILED, exc)
            return [exc]
        if artifact is None:
            return []

        binding.set_binding(
            ResourceBinding(ref=ref, hash="", applied=False, last_applied_time=self.clock())
        )

        errors: list[ReconcileError] = []
        try:
            self._tag_owner(resource_set, artifact.source)
        except OwnerTagError as exc:
            log.error(
                "Failed to add resource set %s as owner of %s: %s", resource_set.key, ref, exc
            )
            errors.append(exc)

        content = ordered_blobs(artifact)
        for content_error in content.errors:
            log.warning("Skipping malformed content: %s", content_error)
            self._mark_false(resource_set, ConditionReason.RETRIEVING_ARTIFACT_FAILED, content_error)
            errors.append(content_error)

        is_successful = not content.errors
        for blob in content.blobs:
            try:
                self.apply_operation(client, blob)
            except Exception as exc:
                is_successful = False
                apply_error = ApplyFailedError(f"failed to apply {ref} to target {target.key}: {exc}")
                apply_error.__cause__ = exc
                log.error("Failed to apply artifact %s to target %s: %s", ref, target.key, exc)
                self._mark_false(resource_set, ConditionReason.APPLY_FAILED, apply_error)
                errors.append(apply_error)

        binding.set_binding(
            ResourceBinding(
                ref=ref,
                hash=compute_hash(content.blobs),
                applied=is_successful,
                last_applied_time=self.clock(),
            )
        )
        return errors

    def _tag_owner(self, resource_set: ResourceSet, source: ArtifactSource) -> None:
        owner = resource_set.owner_reference()
        if source.meta.is_owned_by(owner):
            return
        references = (*source.meta.owner_references, owner)
        merge_patch: dict[str, object] = {
            "metadata": {"ownerReferences": [reference.to_manifest() for reference in references]}
        }
        try:
            self.store.patch(source.kind, source.meta.key, merge_patch)
        except Exception as exc:
            raise OwnerTagError(
                f"failed to patch owner reference onto {source.kind} {source.meta.key}: {exc}"
            ) from exc
        source.meta.owner_references = references

    @staticmethod
    def _mark_false(resource_set: ResourceSet, reason: ConditionReason, error: Exception) -> None:
        resource_set.conditions.mark_false(
            ConditionType.RESOURCES_APPLIED,
            reason,
            ConditionSeverity.WARNING,
            str(error),
        )
