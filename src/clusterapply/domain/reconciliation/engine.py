"""Drive one reconciliation pass for a resource set.

The reconciler fetches the resource set, selects its targets, applies its
artifacts to each target in turn, and writes the resource set status back
on every exit path.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from clusterapply.domain.errors import (
    AggregateReconcileError,
    ObjectNotFoundError,
    PassCancelledError,
    ReconcileError,
)
from clusterapply.domain.model import ConditionReason, ConditionSeverity, ConditionType

from .select import select_targets

if TYPE_CHECKING:
    from clusterapply.domain.model import ObjectKey, ResourceSet
    from clusterapply.domain.ports import ObjectStore

    from .apply import ApplyEngine
    from .context import PassContext

log = getLogger(__name__)


class SkipReason(StrEnum):
    NOT_FOUND = "not_found"
    PAUSED = "paused"
    DELETING = "deleting"


@dataclass(frozen=True, slots=True)
class ReconcilerOptions:
    # raise after the pass when any target failed, instead of only logging
    requeue_on_apply_failure: bool = False


@dataclass(slots=True)
class ReconcileResult:
    """Summary of one pass."""

    key: ObjectKey
    targets: list[ObjectKey] = field(default_factory=list)
    failed_targets: dict[ObjectKey, ReconcileError] = field(default_factory=dict)
    skipped: SkipReason | None = None

    @property
    def succeeded(self) -> bool:
        return self.skipped is None and not self.failed_targets


@dataclass(slots=True)
class ResourceSetReconciler:
    store: ObjectStore
    apply_engine: ApplyEngine
    options: ReconcilerOptions = field(default_factory=ReconcilerOptions)

    def reconcile(self, key: ObjectKey, *, context: PassContext | None = None) -> ReconcileResult:
        """Run one pass for the resource set identified by ``key``."""

        result = ReconcileResult(key=key)
        try:
            resource_set = self.store.get_resource_set(key)
        except ObjectNotFoundError:
            log.info("Resource set %s not found, nothing to reconcile", key)
            result.skipped = SkipReason.NOT_FOUND
            return result

        if resource_set.is_paused:
            log.info("Resource set %s is paused, skipping", key)
            result.skipped = SkipReason.PAUSED
            return result
        if resource_set.meta.is_deleting:
            log.info("Resource set %s is being deleted, skipping", key)
            result.skipped = SkipReason.DELETING
            return result

        failed = True
        try:
            self._reconcile(resource_set, result, context)
            failed = False
        finally:
            self._write_status(resource_set, raise_errors=not failed)
        return result

    def _reconcile(
        self,
        resource_set: ResourceSet,
        result: ReconcileResult,
        context: PassContext | None,
    ) -> None:
        try:
            targets = select_targets(self.store, resource_set)
        except ReconcileError as exc:
            log.error("Failed fetching targets matching resource set %s: %s", resource_set.key, exc)
            resource_set.conditions.mark_false(
                ConditionType.RESOURCES_APPLIED,
                ConditionReason.CLUSTER_MATCH_FAILED,
                ConditionSeverity.WARNING,
                str(exc),
            )
            raise

        for target in targets:
            if context is not None:
                context.raise_if_done()
            result.targets.append(target.key)
            try:
                self.apply_engine.apply_to_target(target, resource_set, context=context)
            except PassCancelledError:
                raise
            except ReconcileError as exc:
                # not requeued by default: the next scheduled pass retries failed artifacts
                log.error("Failed applying resources to target %s: %s", target.key, exc)
                result.failed_targets[target.key] = exc
                if isinstance(exc, AggregateReconcileError) and exc.cancelled:
                    raise

        if result.failed_targets and self.options.requeue_on_apply_failure:
            raise AggregateReconcileError(result.failed_targets.values())

    def _write_status(self, resource_set: ResourceSet, *, raise_errors: bool) -> None:
        try:
            self.store.update_resource_set_status(resource_set)
        except Exception as exc:
            log.exception("Failed to update status of resource set %s", resource_set.key)
            if raise_errors:
                raise ReconcileError(
                    f"failed to update status of resource set {resource_set.key}: {exc}"
                ) from exc
