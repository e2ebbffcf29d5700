"""SQLAlchemy adapter package for the binding store."""

from __future__ import annotations

from .mappings import create_all_tables, metadata
from .repositories import SqlAlchemyBindingRepository
from .unit_of_work import (
    SqlAlchemyBindingUnitOfWork,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyBindingRepository",
    "SqlAlchemyBindingUnitOfWork",
    "create_all_tables",
    "is_started",
    "metadata",
    "shutdown",
    "startup",
]
