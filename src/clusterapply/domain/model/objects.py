"""Identity and metadata shared by every stored object."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True, slots=True, order=True)
class ObjectKey:
    """Namespace-scoped object identity."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"

    @classmethod
    def parse(cls, value: str, *, default_namespace: str = "default") -> ObjectKey:
        namespace, sep, name = value.partition("/")
        if not sep:
            return cls(namespace=default_namespace, name=namespace)
        if not namespace or not name:
            raise ValueError(f"Invalid object key: {value!r}")
        return cls(namespace=namespace, name=name)


@dataclass(frozen=True, slots=True)
class OwnerReference:
    api_version: str
    kind: str
    name: str
    uid: str = ""

    @property
    def group(self) -> str:
        group, sep, _version = self.api_version.rpartition("/")
        return group if sep else ""

    def refers_to(self, other: OwnerReference) -> bool:
        """Same owner regardless of API version or uid."""

        return self.group == other.group and self.kind == other.kind and self.name == other.name

    def to_manifest(self) -> dict[str, str]:
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "name": self.name,
            "uid": self.uid,
        }


@dataclass(slots=True, kw_only=True)
class ObjectMeta:
    name: str
    namespace: str = "default"
    uid: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    owner_references: tuple[OwnerReference, ...] = ()
    deletion_timestamp: datetime | None = None

    @property
    def key(self) -> ObjectKey:
        return ObjectKey(namespace=self.namespace, name=self.name)

    @property
    def is_deleting(self) -> bool:
        return self.deletion_timestamp is not None

    def is_owned_by(self, owner: OwnerReference) -> bool:
        return any(ref.refers_to(owner) for ref in self.owner_references)
