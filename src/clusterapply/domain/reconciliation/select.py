"""Resolve which targets a resource set applies to."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from clusterapply.domain.errors import ListFailedError, ReconcileError
from clusterapply.domain.selectors import as_selector

if TYPE_CHECKING:
    from clusterapply.domain.model import ResourceSet, Target
    from clusterapply.domain.ports import ObjectStore

log = getLogger(__name__)


def select_targets(store: ObjectStore, resource_set: ResourceSet) -> list[Target]:
    """Return live targets in the resource set's namespace matching its selector.

    A missing or empty selector matches nothing, not everything.
    """

    selector = as_selector(resource_set.selector)
    if selector.empty():
        log.info(
            "Empty selector on resource set %s: no targets are selected", resource_set.key
        )
        return []

    namespace = resource_set.meta.namespace
    try:
        candidates = store.list_targets(namespace, selector)
    except ReconcileError:
        raise
    except Exception as exc:
        raise ListFailedError(f"failed to list targets in namespace {namespace!r}: {exc}") from exc

    return [target for target in candidates if not target.meta.is_deleting]
