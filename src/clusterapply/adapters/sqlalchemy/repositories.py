"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from sqlalchemy import delete, func, insert, select

from clusterapply.adapters.sqlalchemy.mappings import (
    resource_binding_table,
    resource_set_binding_table,
    target_binding_table,
)
from clusterapply.domain.model import (
    ArtifactKind,
    ArtifactRef,
    ObjectKey,
    ResourceBinding,
    ResourceSetBinding,
    TargetBinding,
)

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


def _artifact_kind(value: str) -> ArtifactKind | str:
    try:
        return ArtifactKind(value)
    except ValueError:
        return value


class SqlAlchemyBindingRepository:
    """Store each target binding as a row tree; ``save`` replaces one resource set subtree."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, target: ObjectKey) -> TargetBinding | None:
        target_id = self._target_id(target)
        if target_id is None:
            return None

        set_rows = self.session.execute(
            select(
                resource_set_binding_table.c.id,
                resource_set_binding_table.c.resource_set_name,
            )
            .where(resource_set_binding_table.c.target_binding_id == target_id)
            .order_by(resource_set_binding_table.c.position)
        ).all()

        binding = TargetBinding(target=target)
        for set_id, resource_set_name in set_rows:
            resource_rows = self.session.execute(
                select(
                    resource_binding_table.c.artifact_kind,
                    resource_binding_table.c.artifact_name,
                    resource_binding_table.c.hash,
                    resource_binding_table.c.applied,
                    resource_binding_table.c.last_applied_time,
                )
                .where(resource_binding_table.c.resource_set_binding_id == set_id)
                .order_by(resource_binding_table.c.position)
            ).all()
            binding.bindings.append(
                ResourceSetBinding(
                    resource_set_name=resource_set_name,
                    resources=[
                        ResourceBinding(
                            ref=ArtifactRef(kind=_artifact_kind(kind), name=name),
                            hash=hash_,
                            applied=bool(applied),
                            last_applied_time=last_applied_time,
                        )
                        for kind, name, hash_, applied, last_applied_time in resource_rows
                    ],
                )
            )
        return binding

    def save(self, target: ObjectKey, binding: ResourceSetBinding) -> None:
        target_id = self._target_id(target)
        if target_id is None:
            result = self.session.execute(
                insert(target_binding_table).values(
                    target_namespace=target.namespace,
                    target_name=target.name,
                )
            )
            target_id = cast("int", result.inserted_primary_key[0])

        set_id = self.session.execute(
            select(resource_set_binding_table.c.id)
            .where(resource_set_binding_table.c.target_binding_id == target_id)
            .where(resource_set_binding_table.c.resource_set_name == binding.resource_set_name)
        ).scalar_one_or_none()
        if set_id is None:
            next_position = self.session.execute(
                select(func.coalesce(func.max(resource_set_binding_table.c.position), -1) + 1)
                .where(resource_set_binding_table.c.target_binding_id == target_id)
            ).scalar_one()
            result = self.session.execute(
                insert(resource_set_binding_table).values(
                    target_binding_id=target_id,
                    resource_set_name=binding.resource_set_name,
                    position=next_position,
                )
            )
            set_id = cast("int", result.inserted_primary_key[0])
        else:
            self.session.execute(
                delete(resource_binding_table).where(
                    resource_binding_table.c.resource_set_binding_id == set_id
                )
            )

        if not binding.resources:
            return
        self.session.execute(
            insert(resource_binding_table),
            [
                {
                    "resource_set_binding_id": set_id,
                    "artifact_kind": str(resource.ref.kind),
                    "artifact_name": resource.ref.name,
                    "hash": resource.hash,
                    "applied": resource.applied,
                    "last_applied_time": resource.last_applied_time,
                    "position": position,
                }
                for position, resource in enumerate(binding.resources)
            ],
        )

    def list_targets(self) -> list[ObjectKey]:
        rows = self.session.execute(
            select(target_binding_table.c.target_namespace, target_binding_table.c.target_name)
            .order_by(target_binding_table.c.target_namespace, target_binding_table.c.target_name)
        ).all()
        return [ObjectKey(namespace=namespace, name=name) for namespace, name in rows]

    def _target_id(self, target: ObjectKey) -> int | None:
        return self.session.execute(
            select(target_binding_table.c.id)
            .where(target_binding_table.c.target_namespace == target.namespace)
            .where(target_binding_table.c.target_name == target.name)
        ).scalar_one_or_none()


if TYPE_CHECKING:
    from clusterapply.domain.ports import BindingRepository

    _session_stub = cast("Session", object())
    _repo_check: BindingRepository = SqlAlchemyBindingRepository(_session_stub)
