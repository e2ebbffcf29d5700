"""Public interface for the manifest-backed object store."""

from __future__ import annotations

from .schema import (
    ClusterManifest,
    ConfigMapManifest,
    ResourceSetManifest,
    SecretManifest,
)
from .store import (
    InvalidManifestError,
    ManifestObjectStore,
    json_merge_patch,
    read_manifest_documents,
)
from .translator import parse_resource_set, resource_set_status_patch

__all__ = [
    "ClusterManifest",
    "ConfigMapManifest",
    "InvalidManifestError",
    "ManifestObjectStore",
    "ResourceSetManifest",
    "SecretManifest",
    "json_merge_patch",
    "parse_resource_set",
    "read_manifest_documents",
    "resource_set_status_patch",
]
