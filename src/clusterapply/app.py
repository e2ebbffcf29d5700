"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from logging import getLogger
from typing import TYPE_CHECKING

from clusterapply.adapters.remote import HttpTargetClientProvider, apply_manifest
from clusterapply.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyBindingUnitOfWork,
    is_started,
    startup,
)
from clusterapply.config import get_reconciler_options, get_remote_config
from clusterapply.domain.errors import ObjectNotFoundError, ReconcileError
from clusterapply.domain.model import TARGET_KIND
from clusterapply.domain.ports import BindingUnitOfWork
from clusterapply.domain.reconciliation import (
    ApplyEngine,
    PassContext,
    ResourceSetReconciler,
    map_target_to_resource_sets,
)
from clusterapply.domain.selectors import Selector

if TYPE_CHECKING:
    from collections.abc import Sequence

    from clusterapply.domain.model import ObjectKey, Target, TargetBinding
    from clusterapply.domain.ports import ApplyOperation, ObjectStore, TargetClientProvider
    from clusterapply.domain.reconciliation import ReconcilerOptions, ReconcileResult

UnitOfWorkFactory = Callable[[], BindingUnitOfWork]


log = getLogger(__name__)


@dataclass(slots=True)
class ReconcileRun:
    """Outcome of reconciling several resource sets."""

    results: list[ReconcileResult] = field(default_factory=list)
    errors: dict[ObjectKey, ReconcileError] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return not self.errors and all(
            not result.failed_targets for result in self.results
        )


def _ensure_binding_store() -> None:
    if not is_started():
        startup()


def build_reconciler(
    store: ObjectStore,
    *,
    client_provider: TargetClientProvider | None = None,
    apply_operation: ApplyOperation | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    options: ReconcilerOptions | None = None,
    require_token: bool = False,
) -> ResourceSetReconciler:
    """Wire the reconciliation core to the configured adapters."""

    if unit_of_work_factory is None:
        _ensure_binding_store()
        unit_of_work_factory = SqlAlchemyBindingUnitOfWork
    engine = ApplyEngine(
        store=store,
        client_provider=client_provider
        or HttpTargetClientProvider(config=get_remote_config(require_token=require_token)),
        apply_operation=apply_operation or apply_manifest,
        unit_of_work_factory=unit_of_work_factory,
    )
    return ResourceSetReconciler(
        store=store,
        apply_engine=engine,
        options=options or get_reconciler_options(),
    )


def reconcile_resource_sets(
    store: ObjectStore,
    keys: Sequence[ObjectKey] | None = None,
    *,
    namespace: str = "default",
    reconciler: ResourceSetReconciler | None = None,
    timeout_seconds: float | None = None,
) -> ReconcileRun:
    """Run one pass per resource set; all sets in ``namespace`` when no keys are given."""

    effective_reconciler = reconciler or build_reconciler(store)
    effective_keys = (
        list(keys)
        if keys is not None
        else [resource_set.key for resource_set in store.list_resource_sets(namespace)]
    )
    deadline = (
        datetime.now(UTC) + timedelta(seconds=timeout_seconds)
        if timeout_seconds is not None
        else None
    )
    context = PassContext(deadline=deadline)
    log.info("Starting reconciliation of %d resource set(s)", len(effective_keys))

    run = ReconcileRun()
    for key in effective_keys:
        try:
            run.results.append(effective_reconciler.reconcile(key, context=context))
        except ReconcileError as exc:
            log.error("Reconciliation of resource set %s failed: %s", key, exc)
            run.errors[key] = exc

    failed_targets = sum(len(result.failed_targets) for result in run.results)
    log.info(
        f"Finished reconciliation: reconciled={len(run.results)}, failed_sets={len(run.errors)}, "
        f"failed_targets={failed_targets}"
    )
    return run


def find_target(store: ObjectStore, key: ObjectKey) -> Target:
    for target in store.list_targets(key.namespace, Selector()):
        if target.meta.name == key.name:
            return target
    raise ObjectNotFoundError(TARGET_KIND, key)


def resource_sets_for_target(store: ObjectStore, key: ObjectKey) -> list[ObjectKey]:
    """Return the resource sets that must be reconciled after ``key`` changed."""

    target = find_target(store, key)
    keys = map_target_to_resource_sets(store, target)
    log.info("Target %s is selected by %d resource set(s)", key, len(keys))
    return keys


def list_bindings(
    *,
    target: ObjectKey | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[TargetBinding]:
    """Return stored bindings, optionally for a single target."""

    if unit_of_work_factory is None:
        _ensure_binding_store()
        unit_of_work_factory = SqlAlchemyBindingUnitOfWork

    with unit_of_work_factory() as uow:
        repository = uow.repositories.bindings
        keys = [target] if target is not None else repository.list_targets()
        bindings = [binding for key in keys if (binding := repository.get(key)) is not None]
    return bindings
