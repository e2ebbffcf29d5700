"""Ports for persisting binding records."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from clusterapply.domain.model import ObjectKey, ResourceSetBinding, TargetBinding


@runtime_checkable
class BindingRepository(Protocol):
    """Persistence contract for per-target bindings."""

    def get(self, target: ObjectKey) -> TargetBinding | None: ...

    def save(self, target: ObjectKey, binding: ResourceSetBinding) -> None:
        """Replace the records of one resource set; other resource sets are left as stored."""
        ...

    def list_targets(self) -> list[ObjectKey]: ...
