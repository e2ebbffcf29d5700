"""Reconciliation core: apply resource sets to the targets they select.

Flow of one pass:
1) fetch the resource set and select live targets by label predicate
2) per target, acquire a remote client and open the binding scope
3) per artifact ref, skip if applied, else resolve, order, apply, record
4) write the resource set status on every exit path
"""

from __future__ import annotations

from .apply import ApplyEngine
from .bindings import binding_scope, get_or_create_binding
from .context import PassContext
from .engine import ReconcilerOptions, ReconcileResult, ResourceSetReconciler, SkipReason
from .fingerprint import OrderedContent, compute_hash, ordered_blobs
from .mapper import map_target_to_resource_sets, target_labels_changed
from .resolve import ArtifactResolver
from .select import select_targets

__all__ = [
    "ApplyEngine",
    "ArtifactResolver",
    "OrderedContent",
    "PassContext",
    "ReconcileResult",
    "ReconcilerOptions",
    "ResourceSetReconciler",
    "SkipReason",
    "binding_scope",
    "compute_hash",
    "get_or_create_binding",
    "map_target_to_resource_sets",
    "ordered_blobs",
    "select_targets",
    "target_labels_changed",
]
