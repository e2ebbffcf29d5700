"""SQLAlchemy table metadata for the binding store."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    TypeDecorator,
    UniqueConstraint,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_name)s",
        "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


target_binding_table = Table(
    "target_binding",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("target_namespace", String(253), nullable=False),
    Column("target_name", String(253), nullable=False),
    UniqueConstraint("target_namespace", "target_name"),
)

resource_set_binding_table = Table(
    "resource_set_binding",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "target_binding_id",
        Integer,
        ForeignKey("target_binding.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("resource_set_name", String(253), nullable=False),
    Column("position", Integer, nullable=False),
    UniqueConstraint("target_binding_id", "resource_set_name"),
)

resource_binding_table = Table(
    "resource_binding",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "resource_set_binding_id",
        Integer,
        ForeignKey("resource_set_binding.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("artifact_kind", String(63), nullable=False),
    Column("artifact_name", String(253), nullable=False),
    Column("hash", String(128), nullable=False, default=""),
    Column("applied", Boolean, nullable=False, default=False),
    Column("last_applied_time", UTCDateTime(), nullable=True),
    Column("position", Integer, nullable=False),
    UniqueConstraint("resource_set_binding_id", "artifact_kind", "artifact_name"),
)


def create_all_tables(engine: Engine) -> None:
    """Create database tables without running migrations."""

    log.info("Creating all tables")
    metadata.create_all(engine)
