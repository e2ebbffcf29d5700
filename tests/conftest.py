from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from clusterapply.adapters.sqlalchemy.migrations import upgrade_head
from clusterapply.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyBindingUnitOfWork,
    shutdown,
    startup,
)
from clusterapply.domain.reconciliation import ApplyEngine, ResourceSetReconciler

from tests.helpers.resources import (
    FakeClientProvider,
    FakeObjectStore,
    InMemoryBindingStore,
    RecordingApplyOperation,
    fixed_clock,
)

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyBindingUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyBindingUnitOfWork:
        return SqlAlchemyBindingUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def object_store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def client_provider() -> FakeClientProvider:
    return FakeClientProvider()


@pytest.fixture
def apply_operation() -> RecordingApplyOperation:
    return RecordingApplyOperation()


@pytest.fixture
def binding_store() -> InMemoryBindingStore:
    return InMemoryBindingStore()


@pytest.fixture
def apply_engine(
    object_store: FakeObjectStore,
    client_provider: FakeClientProvider,
    apply_operation: RecordingApplyOperation,
    binding_store: InMemoryBindingStore,
) -> ApplyEngine:
    return ApplyEngine(
        store=object_store,
        client_provider=client_provider,
        apply_operation=apply_operation,
        unit_of_work_factory=binding_store.unit_of_work,
        clock=fixed_clock,
    )


@pytest.fixture
def reconciler(object_store: FakeObjectStore, apply_engine: ApplyEngine) -> ResourceSetReconciler:
    return ResourceSetReconciler(store=object_store, apply_engine=apply_engine)
