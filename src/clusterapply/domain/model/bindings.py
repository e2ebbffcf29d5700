"""Per-target record of which artifacts have been applied.

A :class:`TargetBinding` exists once per target and holds one
:class:`ResourceSetBinding` per resource set that selected the target. Under
the apply-once strategy an entry with ``applied=True`` is terminal: it is
never re-resolved or re-applied.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from .objects import ObjectKey
    from .resources import ArtifactRef, ResourceSet


@dataclass(frozen=True, slots=True, kw_only=True)
class ResourceBinding:
    ref: ArtifactRef
    hash: str = ""  # empty while the apply is in flight
    applied: bool = False
    last_applied_time: datetime | None = None


@dataclass(slots=True)
class ResourceSetBinding:
    resource_set_name: str
    resources: list[ResourceBinding] = field(default_factory=list)

    def get(self, ref: ArtifactRef) -> ResourceBinding | None:
        for binding in self.resources:
            if binding.ref == ref:
                return binding
        return None

    def is_applied(self, ref: ArtifactRef) -> bool:
        binding = self.get(ref)
        return binding is not None and binding.applied

    def set_binding(self, binding: ResourceBinding) -> None:
        """Insert ``binding`` or replace the record with the same ref."""

        for index, existing in enumerate(self.resources):
            if existing.ref == binding.ref:
                self.resources[index] = binding
                return
        self.resources.append(binding)


@dataclass(slots=True)
class TargetBinding:
    target: ObjectKey
    bindings: list[ResourceSetBinding] = field(default_factory=list)

    def get(self, resource_set_name: str) -> ResourceSetBinding | None:
        for binding in self.bindings:
            if binding.resource_set_name == resource_set_name:
                return binding
        return None

    def get_or_create(self, resource_set: ResourceSet) -> ResourceSetBinding:
        existing = self.get(resource_set.meta.name)
        if existing is not None:
            return existing
        created = ResourceSetBinding(resource_set_name=resource_set.meta.name)
        self.bindings.append(created)
        return created
