"""Public interface for the remote target adapter."""

from __future__ import annotations

from .apply import ManifestError, apply_manifest, parse_manifest_objects, resource_paths
from .client import HttpTargetClientProvider, RemoteTargetClient

__all__ = [
    "HttpTargetClientProvider",
    "ManifestError",
    "RemoteTargetClient",
    "apply_manifest",
    "parse_manifest_objects",
    "resource_paths",
]
