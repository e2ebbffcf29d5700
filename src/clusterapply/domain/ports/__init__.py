"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import BindingRepository
from .remote import ApplyOperation, RemoteClient, TargetClientProvider
from .store import ObjectStore
from .unit_of_work import (
    BindingRepositories,
    BindingUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "ApplyOperation",
    "BindingRepositories",
    "BindingRepository",
    "BindingUnitOfWork",
    "ObjectStore",
    "RemoteClient",
    "RepositoryCollection",
    "TargetClientProvider",
    "UnitOfWork",
]
