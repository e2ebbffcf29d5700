"""Map target label changes to the resource sets that must be re-evaluated."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from clusterapply.domain.errors import ListFailedError, ReconcileError
from clusterapply.domain.selectors import as_selector

if TYPE_CHECKING:
    from clusterapply.domain.model import ObjectKey, Target
    from clusterapply.domain.ports import ObjectStore

log = getLogger(__name__)


def target_labels_changed(old: Target | None, new: Target) -> bool:
    """Return whether a target event should fan out to resource sets."""

    if old is None:
        return True
    return dict(old.labels) != dict(new.labels)


def map_target_to_resource_sets(store: ObjectStore, target: Target) -> list[ObjectKey]:
    """Return keys of resource sets in the target's namespace that select it.

    An invalid selector on any resource set aborts the whole mapping with
    ``SelectorInvalidError``.
    """

    namespace = target.meta.namespace
    try:
        resource_sets = store.list_resource_sets(namespace)
    except ReconcileError:
        raise
    except Exception as exc:
        raise ListFailedError(
            f"failed to list resource sets in namespace {namespace!r}: {exc}"
        ) from exc

    keys: list[ObjectKey] = []
    for resource_set in resource_sets:
        selector = as_selector(resource_set.selector)
        # an empty selector matches nothing
        if selector.empty():
            continue
        if selector.matches(target.labels):
            keys.append(resource_set.key)

    log.debug("Target %s maps to %d resource set(s)", target.key, len(keys))
    return keys
