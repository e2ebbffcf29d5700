"""Scoped access to the binding record of one (target, resource set) pair."""

from __future__ import annotations

from contextlib import contextmanager
from logging import getLogger
from typing import TYPE_CHECKING

from clusterapply.domain.errors import BindingPersistError
from clusterapply.domain.model import TargetBinding

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from clusterapply.domain.model import ResourceSet, ResourceSetBinding, Target
    from clusterapply.domain.ports import BindingUnitOfWork

log = getLogger(__name__)


def get_or_create_binding(uow: BindingUnitOfWork, target: Target) -> TargetBinding:
    """Load the binding for ``target`` or build an empty one without persisting it."""

    existing = uow.repositories.bindings.get(target.key)
    if existing is not None:
        return existing
    return TargetBinding(target=target.key)


@contextmanager
def binding_scope(
    unit_of_work_factory: Callable[[], BindingUnitOfWork],
    target: Target,
    resource_set: ResourceSet,
) -> Iterator[ResourceSetBinding]:
    """Yield the resource set's binding and flush it on every exit path.

    The record is loaded once, mutated in memory by the caller, and saved and
    committed when the block exits, including when it raises. Only this
    resource set's records are written back. A failed flush is raised only
    if the block itself succeeded.
    """

    with unit_of_work_factory() as uow:
        target_binding = get_or_create_binding(uow, target)
        resource_set_binding = target_binding.get_or_create(resource_set)
        body_failed = True
        try:
            yield resource_set_binding
            body_failed = False
        finally:
            try:
                uow.repositories.bindings.save(target.key, resource_set_binding)
                uow.commit()
            except Exception as exc:
                log.exception(
                    "Failed to persist binding for target %s, resource set %s",
                    target.key,
                    resource_set.key,
                )
                if not body_failed:
                    raise BindingPersistError(
                        f"failed to persist binding for target {target.key}: {exc}"
                    ) from exc
