"""Resource sets, targets, and the artifacts they reference."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from .conditions import Conditions
from .enums import ApplyStrategy, ArtifactKind
from .objects import OwnerReference

if TYPE_CHECKING:
    from collections.abc import Mapping

    from clusterapply.domain.selectors import LabelSelector

    from .objects import ObjectKey, ObjectMeta

RESOURCE_SET_API_VERSION: Final[str] = "addons.clusterapply.io/v1"
RESOURCE_SET_KIND: Final[str] = "ResourceSet"
TARGET_API_VERSION: Final[str] = "clusterapply.io/v1"
TARGET_KIND: Final[str] = "Cluster"

RESOURCE_SET_SECRET_TYPE: Final[str] = "addons.clusterapply.io/resource-set"
PAUSED_ANNOTATION: Final[str] = "clusterapply.io/paused"


@dataclass(frozen=True, slots=True, order=True)
class ArtifactRef:
    kind: ArtifactKind | str
    name: str

    def __str__(self) -> str:
        return f"{self.kind}/{self.name}"


@dataclass(slots=True, kw_only=True)
class ResourceSet:
    meta: ObjectMeta
    selector: LabelSelector | None = None
    resources: tuple[ArtifactRef, ...] = ()
    strategy: ApplyStrategy = ApplyStrategy.APPLY_ONCE
    conditions: Conditions = field(default_factory=Conditions)

    @property
    def key(self) -> ObjectKey:
        return self.meta.key

    @property
    def is_paused(self) -> bool:
        return self.meta.annotations.get(PAUSED_ANNOTATION, "").lower() == "true"

    def owner_reference(self) -> OwnerReference:
        return OwnerReference(
            api_version=RESOURCE_SET_API_VERSION,
            kind=RESOURCE_SET_KIND,
            name=self.meta.name,
            uid=self.meta.uid,
        )


@dataclass(slots=True, kw_only=True)
class Target:
    """A remote environment artifacts are applied to."""

    meta: ObjectMeta
    endpoint: str | None = None

    @property
    def key(self) -> ObjectKey:
        return self.meta.key

    @property
    def labels(self) -> Mapping[str, str]:
        return self.meta.labels


@dataclass(slots=True, kw_only=True)
class ArtifactSource:
    """Raw configuration object backing an :class:`ArtifactRef`."""

    kind: ArtifactKind
    meta: ObjectMeta
    subtype: str | None = None
    data: Mapping[str, object] | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class ResolvedArtifact:
    """Materialised artifact content for one pass; never persisted."""

    ref: ArtifactRef
    source: ArtifactSource
    content: Mapping[str, object]

    @property
    def is_secret(self) -> bool:
        return self.ref.kind == ArtifactKind.SECRET
