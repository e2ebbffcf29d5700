"""Deterministic ordering and hashing of artifact content."""

from __future__ import annotations

import base64
import binascii
import hashlib
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from clusterapply.domain.errors import ArtifactRetrievalError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from clusterapply.domain.model import ResolvedArtifact

HASH_PREFIX = "sha256:"


@dataclass(slots=True)
class OrderedContent:
    blobs: list[bytes] = field(default_factory=list)
    errors: list[ArtifactRetrievalError] = field(default_factory=list)


def ordered_blobs(artifact: ResolvedArtifact) -> OrderedContent:
    """Return the artifact's values as raw bytes, ordered by key.

    Keys are sorted so the result never depends on mapping iteration order.
    Secret values are base64 encoded in the store and decoded here. A value
    that is not a string, or not valid base64 for a secret, is reported and
    left out.
    """

    result = OrderedContent()
    for key in sorted(artifact.content):
        value = artifact.content[key]
        if not isinstance(value, str):
            result.errors.append(
                ArtifactRetrievalError(f"failed to get value of key {key!r} from {artifact.ref}")
            )
            continue
        if artifact.is_secret:
            try:
                result.blobs.append(base64.b64decode(value, validate=True))
            except (binascii.Error, ValueError):
                result.errors.append(
                    ArtifactRetrievalError(f"value of key {key!r} in {artifact.ref} is not base64")
                )
            continue
        result.blobs.append(value.encode("utf-8"))
    return result


def compute_hash(blobs: Iterable[bytes]) -> str:
    """Order-sensitive SHA-256 over every blob, formatted as ``sha256:<hex>``."""

    digest = hashlib.sha256()
    for blob in blobs:
        digest.update(blob)
    return f"{HASH_PREFIX}{digest.hexdigest()}"
