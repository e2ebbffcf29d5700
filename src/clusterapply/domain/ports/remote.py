"""Ports for reaching targets and applying manifests to them."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from clusterapply.domain.model import Target


@runtime_checkable
class RemoteClient(Protocol):
    """Opaque handle addressing one target."""

    @property
    def target_name(self) -> str: ...


@runtime_checkable
class TargetClientProvider(Protocol):
    """Hand out remote clients; caching is the provider's concern."""

    def get_client(self, target: Target) -> RemoteClient: ...


@runtime_checkable
class ApplyOperation(Protocol):
    """Apply one decoded manifest blob to the target behind ``client``."""

    def __call__(self, client: RemoteClient, raw: bytes) -> None: ...
