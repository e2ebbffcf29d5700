"""Create binding tables.

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00

"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "target_binding",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("target_namespace", sa.String(length=253), nullable=False),
        sa.Column("target_name", sa.String(length=253), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_target_binding")),
        sa.UniqueConstraint(
            "target_namespace",
            "target_name",
            name=op.f("uq_target_binding_target_namespace"),
        ),
    )
    op.create_table(
        "resource_set_binding",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("target_binding_id", sa.Integer(), nullable=False),
        sa.Column("resource_set_name", sa.String(length=253), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["target_binding_id"],
            ["target_binding.id"],
            name=op.f("fk_resource_set_binding_target_binding_id_target_binding"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_resource_set_binding")),
        sa.UniqueConstraint(
            "target_binding_id",
            "resource_set_name",
            name=op.f("uq_resource_set_binding_target_binding_id"),
        ),
    )
    op.create_index(
        op.f("ix_resource_set_binding_target_binding_id"),
        "resource_set_binding",
        ["target_binding_id"],
    )
    op.create_table(
        "resource_binding",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("resource_set_binding_id", sa.Integer(), nullable=False),
        sa.Column("artifact_kind", sa.String(length=63), nullable=False),
        sa.Column("artifact_name", sa.String(length=253), nullable=False),
        sa.Column("hash", sa.String(length=128), nullable=False),
        sa.Column("applied", sa.Boolean(), nullable=False),
        sa.Column("last_applied_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["resource_set_binding_id"],
            ["resource_set_binding.id"],
            name=op.f("fk_resource_binding_resource_set_binding_id_resource_set_binding"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_resource_binding")),
        sa.UniqueConstraint(
            "resource_set_binding_id",
            "artifact_kind",
            "artifact_name",
            name=op.f("uq_resource_binding_resource_set_binding_id"),
        ),
    )
    op.create_index(
        op.f("ix_resource_binding_resource_set_binding_id"),
        "resource_binding",
        ["resource_set_binding_id"],
    )


def downgrade() -> None:
    op.drop_index(
        op.f("ix_resource_binding_resource_set_binding_id"), table_name="resource_binding"
    )
    op.drop_table("resource_binding")
    op.drop_index(
        op.f("ix_resource_set_binding_target_binding_id"), table_name="resource_set_binding"
    )
    op.drop_table("resource_set_binding")
    op.drop_table("target_binding")
