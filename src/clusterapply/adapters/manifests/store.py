"""In-memory object store backed by manifest documents.

Manifests are kept as plain dicts keyed by ``(kind, namespace, name)`` and
validated with the pydantic schemas on every write, so the raw documents can
be patched with RFC 7386 merge patches and written back out unchanged apart
from the patched fields.
"""

from __future__ import annotations

import copy
import threading
import uuid
from collections.abc import Mapping
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final, cast

import yaml
from pydantic import ValidationError

from clusterapply.domain.errors import ObjectNotFoundError
from clusterapply.domain.model import RESOURCE_SET_KIND, TARGET_KIND, ArtifactKind, ObjectKey

from .schema import (
    MANIFEST_MODELS,
    ClusterManifest,
    ConfigMapManifest,
    ResourceSetManifest,
    SecretManifest,
)
from .translator import (
    parse_artifact_source,
    parse_resource_set,
    parse_target,
    resource_set_status_patch,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from clusterapply.domain.model import ArtifactSource, ResourceSet, Target
    from clusterapply.domain.ports import ObjectStore
    from clusterapply.domain.selectors import Selector

    from .schema import Manifest

log = getLogger(__name__)

MANIFEST_SUFFIXES: Final[frozenset[str]] = frozenset({".yaml", ".yml", ".json"})

type StoreKey = tuple[str, str, str]


class InvalidManifestError(ValueError):
    """Raised when a document cannot be held by the store."""


def json_merge_patch(target: object, patch: object) -> object:
    """Apply an RFC 7386 merge patch to ``target`` without mutating it."""

    if not isinstance(patch, Mapping):
        return copy.deepcopy(patch)
    patch_map = cast("Mapping[str, object]", patch)
    result: dict[str, object] = (
        copy.deepcopy(dict(cast("Mapping[str, object]", target)))
        if isinstance(target, Mapping)
        else {}
    )
    for key, value in patch_map.items():
        if value is None:
            result.pop(key, None)
        else:
            result[key] = json_merge_patch(result.get(key), value)
    return result


def read_manifest_documents(path: Path) -> list[dict[str, Any]]:
    """Read every non-empty document from one YAML or JSON file."""

    with path.open("r", encoding="utf-8") as handle:
        try:
            documents = list(yaml.safe_load_all(handle))
        except yaml.YAMLError as exc:
            raise InvalidManifestError(f"{path}: {exc}") from exc

    manifests: list[dict[str, Any]] = []
    for index, document in enumerate(documents):
        if document is None:
            continue
        if not isinstance(document, Mapping):
            raise InvalidManifestError(f"{path}: document {index} is not a mapping")
        manifests.append(dict(cast("Mapping[str, Any]", document)))
    return manifests


def _iter_manifest_files(paths: Iterable[Path]) -> Iterator[Path]:
    for path in paths:
        if path.is_dir():
            yield from sorted(
                candidate
                for candidate in path.rglob("*")
                if candidate.is_file() and candidate.suffix in MANIFEST_SUFFIXES
            )
        else:
            yield path


class ManifestObjectStore:
    def __init__(self, manifests: Iterable[Mapping[str, Any]] = ()) -> None:
        self._objects: dict[StoreKey, dict[str, Any]] = {}
        self._lock = threading.RLock()
        for manifest in manifests:
            self.add(manifest)

    @classmethod
    def from_paths(cls, paths: Iterable[Path]) -> ManifestObjectStore:
        store = cls()
        for path in _iter_manifest_files(paths):
            documents = read_manifest_documents(path)
            for document in documents:
                store.add(document)
            log.debug("Loaded %d manifest(s) from %s", len(documents), path)
        log.info("Loaded %d object(s) into the manifest store", len(store))
        return store

    def __len__(self) -> int:
        return len(self._objects)

    def add(self, manifest: Mapping[str, Any]) -> ObjectKey:
        """Validate ``manifest`` and insert or replace it."""

        raw = copy.deepcopy(dict(manifest))
        metadata = raw.get("metadata")
        if isinstance(metadata, dict) and not metadata.get("uid"):
            cast("dict[str, Any]", metadata)["uid"] = str(uuid.uuid4())
        validated = self._validate(raw)
        key = ObjectKey(namespace=validated.metadata.namespace, name=validated.metadata.name)
        with self._lock:
            self._objects[(validated.kind, key.namespace, key.name)] = raw
        return key

    def manifests(self) -> list[dict[str, Any]]:
        with self._lock:
            return [copy.deepcopy(self._objects[key]) for key in sorted(self._objects)]

    def get_manifest(self, kind: str, key: ObjectKey) -> dict[str, Any]:
        with self._lock:
            return copy.deepcopy(self._raw(kind, key))

    def dump(self, path: Path) -> None:
        """Write every held manifest to ``path`` as a YAML stream."""

        with path.open("w", encoding="utf-8") as handle:
            yaml.safe_dump_all(self.manifests(), handle, sort_keys=False)

    # ObjectStore ----------------------------------------------------------

    def get_resource_set(self, key: ObjectKey) -> ResourceSet:
        return parse_resource_set(
            cast("ResourceSetManifest", self._model(RESOURCE_SET_KIND, key))
        )

    def list_resource_sets(self, namespace: str) -> list[ResourceSet]:
        return [
            parse_resource_set(cast("ResourceSetManifest", model))
            for model in self._list(RESOURCE_SET_KIND, namespace)
        ]

    def list_targets(self, namespace: str, selector: Selector) -> list[Target]:
        targets = [
            parse_target(cast("ClusterManifest", model))
            for model in self._list(TARGET_KIND, namespace)
        ]
        return [target for target in targets if selector.matches(target.labels)]

    def get_artifact_source(self, kind: ArtifactKind, key: ObjectKey) -> ArtifactSource:
        model = self._model(ArtifactKind(kind).value, key)
        return parse_artifact_source(cast("ConfigMapManifest | SecretManifest", model))

    def patch(self, kind: str, key: ObjectKey, merge_patch: Mapping[str, object]) -> None:
        with self._lock:
            raw = self._raw(kind, key)
            patched = cast("dict[str, Any]", json_merge_patch(raw, merge_patch))
            validated = self._validate(patched)
            if validated.metadata.name != key.name or validated.metadata.namespace != key.namespace:
                raise InvalidManifestError(f"patch may not rename {kind} {key}")
            self._objects[(kind, key.namespace, key.name)] = patched
        log.debug("Patched %s %s", kind, key)

    def update_resource_set_status(self, resource_set: ResourceSet) -> None:
        with self._lock:
            status = self._raw(RESOURCE_SET_KIND, resource_set.key).get("status") or {}
            existing = status.get("conditions") or ()
            self.patch(
                RESOURCE_SET_KIND,
                resource_set.key,
                resource_set_status_patch(resource_set, existing),
            )

    # helpers --------------------------------------------------------------

    @staticmethod
    def _validate(raw: Mapping[str, Any]) -> Manifest:
        kind = raw.get("kind")
        model = MANIFEST_MODELS.get(kind) if isinstance(kind, str) else None
        if model is None:
            raise InvalidManifestError(f"unsupported manifest kind: {kind!r}")
        try:
            return model.model_validate(raw)
        except ValidationError as exc:
            raise InvalidManifestError(f"invalid {kind} manifest: {exc}") from exc

    def _raw(self, kind: str, key: ObjectKey) -> dict[str, Any]:
        raw = self._objects.get((kind, key.namespace, key.name))
        if raw is None:
            raise ObjectNotFoundError(kind, key)
        return raw

    def _model(self, kind: str, key: ObjectKey) -> Manifest:
        with self._lock:
            return self._validate(self._raw(kind, key))

    def _list(self, kind: str, namespace: str) -> list[Manifest]:
        with self._lock:
            return [
                self._validate(raw)
                for (raw_kind, raw_namespace, _name), raw in sorted(self._objects.items())
                if raw_kind == kind and raw_namespace == namespace
            ]


if TYPE_CHECKING:
    _store_check: ObjectStore = ManifestObjectStore()
