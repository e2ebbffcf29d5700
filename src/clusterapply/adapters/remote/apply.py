"""Create-if-absent apply of manifest blobs to a target's object API.

A blob may hold several YAML or JSON documents. Each object is looked up on
the target first and only created when it does not exist yet; objects that
already exist are left untouched.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from logging import getLogger
from typing import TYPE_CHECKING, Any, Final, cast

import httpx
import yaml

if TYPE_CHECKING:
    from clusterapply.adapters.http_resilience import ResilientClient

    from .client import RemoteTargetClient

log = getLogger(__name__)

DEFAULT_NAMESPACE: Final[str] = "default"

_CLUSTER_SCOPED_KINDS: Final[frozenset[str]] = frozenset(
    {
        "APIService",
        "ClusterRole",
        "ClusterRoleBinding",
        "CustomResourceDefinition",
        "MutatingWebhookConfiguration",
        "Namespace",
        "Node",
        "PersistentVolume",
        "PriorityClass",
        "StorageClass",
        "ValidatingWebhookConfiguration",
    }
)
_IRREGULAR_PLURALS: Final[dict[str, str]] = {"endpoints": "endpoints"}


class ManifestError(ValueError):
    """Raised when a blob does not contain valid manifest objects."""


def parse_manifest_objects(raw: bytes) -> list[dict[str, Any]]:
    """Split ``raw`` into manifest objects, dropping empty documents."""

    try:
        documents = list(yaml.safe_load_all(raw.decode("utf-8")))
    except (UnicodeDecodeError, yaml.YAMLError) as exc:
        raise ManifestError(f"blob is not valid YAML: {exc}") from exc

    objects: list[dict[str, Any]] = []
    for index, document in enumerate(documents):
        if document is None:
            continue
        if not isinstance(document, Mapping):
            raise ManifestError(f"document {index} is not a mapping")
        manifest = dict(cast("Mapping[str, Any]", document))
        metadata = manifest.get("metadata")
        if not manifest.get("apiVersion") or not manifest.get("kind"):
            raise ManifestError(f"document {index} is missing apiVersion or kind")
        if not isinstance(metadata, Mapping) or not cast("Mapping[str, Any]", metadata).get("name"):
            raise ManifestError(f"document {index} is missing metadata.name")
        objects.append(manifest)
    return objects


def resource_paths(manifest: Mapping[str, Any]) -> tuple[str, str]:
    """Return the collection and item paths for ``manifest``."""

    api_version = str(manifest["apiVersion"])
    kind = str(manifest["kind"])
    metadata = cast("Mapping[str, Any]", manifest["metadata"])
    name = str(metadata["name"])

    base = f"/api/{api_version}" if "/" not in api_version else f"/apis/{api_version}"
    if kind not in _CLUSTER_SCOPED_KINDS:
        namespace = str(metadata.get("namespace") or DEFAULT_NAMESPACE)
        base = f"{base}/namespaces/{namespace}"
    collection = f"{base}/{_plural(kind)}"
    return collection, f"{collection}/{name}"


def _plural(kind: str) -> str:
    lowered = kind.lower()
    if lowered in _IRREGULAR_PLURALS:
        return _IRREGULAR_PLURALS[lowered]
    if lowered.endswith(("s", "x", "ch", "sh")):
        return f"{lowered}es"
    if lowered.endswith("y") and lowered[-2:-1] not in {"a", "e", "i", "o", "u"}:
        return f"{lowered[:-1]}ies"
    return f"{lowered}s"


def apply_manifest(client: RemoteTargetClient, raw: bytes) -> None:
    """Apply every object in ``raw`` to the target behind ``client``."""

    objects = parse_manifest_objects(raw)
    if not objects:
        log.debug("Blob for target %s holds no objects", client.target_name)
        return
    asyncio.run(_apply_objects(client, objects))


async def _apply_objects(client: RemoteTargetClient, objects: list[dict[str, Any]]) -> None:
    async with client.open() as http:
        for manifest in objects:
            await _create_if_absent(http, manifest, target_name=client.target_name)


async def _create_if_absent(
    http: ResilientClient,
    manifest: dict[str, Any],
    *,
    target_name: str,
) -> None:
    collection, item = resource_paths(manifest)
    existing = await http.get(item)
    if existing.is_success:
        log.debug("Object %s already exists on target %s", item, target_name)
        return
    if existing.status_code != httpx.codes.NOT_FOUND:
        existing.raise_for_status()

    created = await http.post(collection, json=manifest)
    if created.status_code == httpx.codes.CONFLICT:
        log.debug("Object %s was created concurrently on target %s", item, target_name)
        return
    created.raise_for_status()
    log.info("Created %s on target %s", item, target_name)
