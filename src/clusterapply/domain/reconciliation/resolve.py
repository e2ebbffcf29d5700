"""Fetch and validate the configuration objects referenced by a resource set."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from clusterapply.domain.errors import ArtifactRetrievalError, UnsupportedArtifactSubtypeError
from clusterapply.domain.model import (
    RESOURCE_SET_SECRET_TYPE,
    ArtifactKind,
    ObjectKey,
    ResolvedArtifact,
)

if TYPE_CHECKING:
    from clusterapply.domain.model import ArtifactRef, ArtifactSource
    from clusterapply.domain.ports import ObjectStore

log = getLogger(__name__)


@dataclass(slots=True)
class ArtifactResolver:
    """Resolve artifact refs against ``store`` within a single namespace.

    Only artifacts in the same namespace as the target are visible.
    """

    store: ObjectStore

    def resolve(self, ref: ArtifactRef, namespace: str) -> ResolvedArtifact | None:
        try:
            kind = ArtifactKind(ref.kind)
        except ValueError:
            log.warning("Ignoring artifact %s with unsupported kind", ref)
            return None

        key = ObjectKey(namespace=namespace, name=ref.name)
        match kind:
            case ArtifactKind.CONFIG_MAP:
                source = self._fetch(kind, key)
            case ArtifactKind.SECRET:
                source = self._fetch(kind, key)
                if source.subtype != RESOURCE_SET_SECRET_TYPE:
                    raise UnsupportedArtifactSubtypeError(
                        f"unsupported secret type {source.subtype!r} on {ref} "
                        f"(expected {RESOURCE_SET_SECRET_TYPE!r})"
                    )

        if source.data is None:
            raise ArtifactRetrievalError(f"missing data field on {ref}")
        return ResolvedArtifact(ref=ref, source=source, content=dict(source.data))

    def _fetch(self, kind: ArtifactKind, key: ObjectKey) -> ArtifactSource:
        try:
            return self.store.get_artifact_source(kind, key)
        except Exception as exc:
            raise ArtifactRetrievalError(f"failed to retrieve {kind} {key}: {exc}") from exc
