"""Port for the object store holding resource sets, targets, and artifacts."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping

    from clusterapply.domain.model import (
        ArtifactKind,
        ArtifactSource,
        ObjectKey,
        ResourceSet,
        Target,
    )
    from clusterapply.domain.selectors import Selector


@runtime_checkable
class ObjectStore(Protocol):
    """Namespace-scoped store of declarative objects.

    ``get_*`` methods raise ``ObjectNotFoundError`` for missing objects.
    """

    def get_resource_set(self, key: ObjectKey) -> ResourceSet: ...

    def list_resource_sets(self, namespace: str) -> list[ResourceSet]: ...

    def list_targets(self, namespace: str, selector: Selector) -> list[Target]: ...

    def get_artifact_source(self, kind: ArtifactKind, key: ObjectKey) -> ArtifactSource: ...

    def patch(self, kind: str, key: ObjectKey, merge_patch: Mapping[str, object]) -> None: ...

    def update_resource_set_status(self, resource_set: ResourceSet) -> None: ...
