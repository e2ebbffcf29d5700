from __future__ import annotations

import base64
import hashlib
import itertools
from datetime import timedelta
from typing import TYPE_CHECKING

import pytest

from clusterapply.domain.errors import (
    AggregateReconcileError,
    ApplyFailedError,
    ArtifactRetrievalError,
    ClientAcquisitionError,
    OwnerTagError,
    PassCancelledError,
    UnsupportedArtifactSubtypeError,
)
from clusterapply.domain.model import (
    ArtifactKind,
    ArtifactRef,
    ConditionReason,
    ConditionSeverity,
    ConditionStatus,
    ConditionType,
    ResourceBinding,
    ResourceSet,
    Target,
    TargetBinding,
)
from clusterapply.domain.reconciliation import ApplyEngine, PassContext

from tests.helpers.resources import (
    FIXED_NOW,
    FakeClientProvider,
    FakeObjectStore,
    InMemoryBindingStore,
    RecordingApplyOperation,
    config_map_ref,
    make_config_map,
    make_resource_set,
    make_secret,
    make_target,
    secret_ref,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from clusterapply.adapters.sqlalchemy.unit_of_work import SqlAlchemyBindingUnitOfWork


def _binding(
    store: InMemoryBindingStore,
    target: Target,
    resource_set: ResourceSet,
    ref: ArtifactRef,
) -> ResourceBinding | None:
    target_binding = store.get(target.key)
    if target_binding is None:
        return None
    record = target_binding.get(resource_set.meta.name)
    if record is None:
        return None
    return record.get(ref)


def _sha(*blobs: bytes) -> str:
    return "sha256:" + hashlib.sha256(b"".join(blobs)).hexdigest()


def test_applies_blobs_in_key_order_and_records_binding(
    apply_engine: ApplyEngine,
    object_store: FakeObjectStore,
    apply_operation: RecordingApplyOperation,
    binding_store: InMemoryBindingStore,
) -> None:
    object_store.add_source(make_config_map("addons", {"b": "2", "a": "1"}))
    target = make_target("t1", {"env": "prod"})
    resource_set = make_resource_set(resources=(config_map_ref("addons"),))

    apply_engine.apply_to_target(target, resource_set)

    assert apply_operation.blobs_for("default/t1") == [b"1", b"2"]
    assert _binding(binding_store, target, resource_set, config_map_ref("addons")) == (
        ResourceBinding(
            ref=config_map_ref("addons"),
            hash=_sha(b"1", b"2"),
            applied=True,
            last_applied_time=FIXED_NOW,
        )
    )
    assert resource_set.conditions.is_true(ConditionType.RESOURCES_APPLIED)


def test_second_apply_is_a_no_op(
    apply_engine: ApplyEngine,
    object_store: FakeObjectStore,
    apply_operation: RecordingApplyOperation,
) -> None:
    object_store.add_source(make_config_map("addons", {"a": "1"}))
    target = make_target("t1")
    resource_set = make_resource_set(resources=(config_map_ref("addons"),))

    apply_engine.apply_to_target(target, resource_set)
    object_store.sources.clear()
    apply_engine.apply_to_target(target, resource_set)

    assert len(apply_operation.calls) == 1


def test_secret_content_is_decoded_before_apply(
    apply_engine: ApplyEngine,
    object_store: FakeObjectStore,
    apply_operation: RecordingApplyOperation,
    binding_store: InMemoryBindingStore,
) -> None:
    object_store.add_source(make_secret("creds", {"manifest": "kind: Secret"}))
    target = make_target("t1")
    resource_set = make_resource_set(resources=(secret_ref("creds"),))

    apply_engine.apply_to_target(target, resource_set)

    assert apply_operation.blobs_for("default/t1") == [b"kind: Secret"]
    binding = _binding(binding_store, target, resource_set, secret_ref("creds"))
    assert binding is not None
    assert binding.applied
    assert binding.hash == _sha(b"kind: Secret")


def test_owner_reference_is_patched_once(
    apply_engine: ApplyEngine,
    object_store: FakeObjectStore,
) -> None:
    source = object_store.add_source(make_config_map("addons", {"a": "1"}))
    resource_set = make_resource_set("rs", resources=(config_map_ref("addons"),))

    apply_engine.apply_to_target(make_target("t1"), resource_set)
    apply_engine.apply_to_target(make_target("t2"), resource_set)

    assert len(object_store.patches) == 1
    kind, key, patch = object_store.patches[0]
    assert kind == ArtifactKind.CONFIG_MAP
    assert key == source.meta.key
    assert patch == {
        "metadata": {
            "ownerReferences": [
                {
                    "apiVersion": "addons.clusterapply.io/v1",
                    "kind": "ResourceSet",
                    "name": "rs",
                    "uid": "uid-rs",
                }
            ]
        }
    }
    assert source.meta.is_owned_by(resource_set.owner_reference())


def test_owner_tag_failure_is_reported_but_blobs_are_applied(
    apply_engine: ApplyEngine,
    object_store: FakeObjectStore,
    apply_operation: RecordingApplyOperation,
    binding_store: InMemoryBindingStore,
) -> None:
    object_store.add_source(make_config_map("addons", {"a": "1"}))
    object_store.patch_error = PermissionError("forbidden")
    target = make_target("t1")
    resource_set = make_resource_set(resources=(config_map_ref("addons"),))

    with pytest.raises(AggregateReconcileError) as excinfo:
        apply_engine.apply_to_target(target, resource_set)

    assert [type(error) for error in excinfo.value.errors] == [OwnerTagError]
    assert apply_operation.blobs_for("default/t1") == [b"1"]
    binding = _binding(binding_store, target, resource_set, config_map_ref("addons"))
    assert binding is not None
    assert binding.applied


def test_partial_apply_marks_ref_unapplied_and_hashes_every_blob(
    apply_engine: ApplyEngine,
    object_store: FakeObjectStore,
    apply_operation: RecordingApplyOperation,
    binding_store: InMemoryBindingStore,
) -> None:
    object_store.add_source(make_config_map("addons", {"a": "1", "b": "2", "c": "3"}))
    apply_operation.failing = {b"2"}
    target = make_target("t1")
    resource_set = make_resource_set(resources=(config_map_ref("addons"),))

    with pytest.raises(AggregateReconcileError) as excinfo:
        apply_engine.apply_to_target(target, resource_set)

    assert apply_operation.blobs_for("default/t1") == [b"1", b"2", b"3"]
    (error,) = excinfo.value.errors
    assert isinstance(error, ApplyFailedError)
    assert isinstance(error.__cause__, RuntimeError)
    binding = _binding(binding_store, target, resource_set, config_map_ref("addons"))
    assert binding is not None
    assert not binding.applied
    assert binding.hash == _sha(b"1", b"2", b"3")
    condition = resource_set.conditions.get(ConditionType.RESOURCES_APPLIED)
    assert condition is not None
    assert condition.status is ConditionStatus.FALSE
    assert condition.reason is ConditionReason.APPLY_FAILED


def test_failed_ref_is_retried_on_next_pass(
    apply_engine: ApplyEngine,
    object_store: FakeObjectStore,
    apply_operation: RecordingApplyOperation,
    binding_store: InMemoryBindingStore,
) -> None:
    object_store.add_source(make_config_map("addons", {"a": "1"}))
    apply_operation.failing = {b"1"}
    target = make_target("t1")
    resource_set = make_resource_set(resources=(config_map_ref("addons"),))

    with pytest.raises(AggregateReconcileError):
        apply_engine.apply_to_target(target, resource_set)
    apply_operation.failing = set()
    apply_engine.apply_to_target(target, resource_set)

    assert apply_operation.blobs_for("default/t1") == [b"1", b"1"]
    binding = _binding(binding_store, target, resource_set, config_map_ref("addons"))
    assert binding is not None
    assert binding.applied
    assert resource_set.conditions.is_true(ConditionType.RESOURCES_APPLIED)


def test_broken_artifact_does_not_block_siblings(
    apply_engine: ApplyEngine,
    object_store: FakeObjectStore,
    apply_operation: RecordingApplyOperation,
    binding_store: InMemoryBindingStore,
) -> None:
    object_store.add_source(make_config_map("good", {"a": "ok"}))
    target = make_target("t1")
    resource_set = make_resource_set(
        resources=(config_map_ref("missing"), config_map_ref("good"))
    )

    with pytest.raises(AggregateReconcileError) as excinfo:
        apply_engine.apply_to_target(target, resource_set)

    assert [type(error) for error in excinfo.value.errors] == [ArtifactRetrievalError]
    assert apply_operation.blobs_for("default/t1") == [b"ok"]
    assert _binding(binding_store, target, resource_set, config_map_ref("missing")) is None
    good = _binding(binding_store, target, resource_set, config_map_ref("good"))
    assert good is not None
    assert good.applied
    condition = resource_set.conditions.get(ConditionType.RESOURCES_APPLIED)
    assert condition is not None
    assert condition.reason is ConditionReason.RETRIEVING_ARTIFACT_FAILED
    assert condition.severity is ConditionSeverity.WARNING


def test_wrong_secret_subtype_is_reported(
    apply_engine: ApplyEngine,
    object_store: FakeObjectStore,
    apply_operation: RecordingApplyOperation,
) -> None:
    object_store.add_source(make_secret("creds", {"a": "x"}, subtype="Opaque"))
    resource_set = make_resource_set(resources=(secret_ref("creds"),))

    with pytest.raises(AggregateReconcileError) as excinfo:
        apply_engine.apply_to_target(make_target("t1"), resource_set)

    assert isinstance(excinfo.value.errors[0], UnsupportedArtifactSubtypeError)
    assert apply_operation.calls == []
    condition = resource_set.conditions.get(ConditionType.RESOURCES_APPLIED)
    assert condition is not None
    assert condition.reason is ConditionReason.WRONG_ARTIFACT_SUBTYPE


def test_malformed_secret_value_keeps_ref_unapplied(
    apply_engine: ApplyEngine,
    object_store: FakeObjectStore,
    apply_operation: RecordingApplyOperation,
    binding_store: InMemoryBindingStore,
) -> None:
    good = base64.b64encode(b"kind: Good").decode()
    object_store.add_source(
        make_secret("creds", {"a": good, "b": "***"}, encode=False)
    )
    target = make_target("t1")
    resource_set = make_resource_set(resources=(secret_ref("creds"),))

    with pytest.raises(AggregateReconcileError):
        apply_engine.apply_to_target(target, resource_set)

    assert apply_operation.blobs_for("default/t1") == [b"kind: Good"]
    binding = _binding(binding_store, target, resource_set, secret_ref("creds"))
    assert binding is not None
    assert not binding.applied


def test_unknown_kind_is_skipped_silently(
    apply_engine: ApplyEngine,
    object_store: FakeObjectStore,
    apply_operation: RecordingApplyOperation,
    binding_store: InMemoryBindingStore,
) -> None:
    object_store.add_source(make_config_map("addons", {"a": "1"}))
    ref = ArtifactRef(kind="Deployment", name="addons")
    target = make_target("t1")
    resource_set = make_resource_set(resources=(ref, config_map_ref("addons")))

    apply_engine.apply_to_target(target, resource_set)

    assert apply_operation.blobs_for("default/t1") == [b"1"]
    assert _binding(binding_store, target, resource_set, ref) is None


def test_client_failure_stops_before_artifact_work(
    apply_engine: ApplyEngine,
    object_store: FakeObjectStore,
    client_provider: FakeClientProvider,
    apply_operation: RecordingApplyOperation,
    binding_store: InMemoryBindingStore,
) -> None:
    object_store.add_source(make_config_map("addons", {"a": "1"}))
    client_provider.failing = {"t1"}
    resource_set = make_resource_set(resources=(config_map_ref("addons"),))

    with pytest.raises(ClientAcquisitionError) as excinfo:
        apply_engine.apply_to_target(make_target("t1"), resource_set)

    assert isinstance(excinfo.value.__cause__, ConnectionError)
    assert apply_operation.calls == []
    assert binding_store.commits == 0
    condition = resource_set.conditions.get(ConditionType.RESOURCES_APPLIED)
    assert condition is not None
    assert condition.reason is ConditionReason.REMOTE_CLIENT_FAILED
    assert condition.severity is ConditionSeverity.ERROR


def test_interrupted_apply_leaves_provisional_binding(
    apply_engine: ApplyEngine,
    object_store: FakeObjectStore,
    apply_operation: RecordingApplyOperation,
    binding_store: InMemoryBindingStore,
) -> None:
    object_store.add_source(make_config_map("addons", {"a": "1"}))
    target = make_target("t1")
    resource_set = make_resource_set(resources=(config_map_ref("addons"),))

    def interrupt() -> None:
        raise KeyboardInterrupt

    apply_operation.on_call = interrupt

    with pytest.raises(KeyboardInterrupt):
        apply_engine.apply_to_target(target, resource_set)

    assert _binding(binding_store, target, resource_set, config_map_ref("addons")) == (
        ResourceBinding(
            ref=config_map_ref("addons"),
            hash="",
            applied=False,
            last_applied_time=FIXED_NOW,
        )
    )


def test_cancellation_is_checked_between_refs(
    apply_engine: ApplyEngine,
    object_store: FakeObjectStore,
    apply_operation: RecordingApplyOperation,
    binding_store: InMemoryBindingStore,
) -> None:
    object_store.add_source(make_config_map("first", {"a": "1"}))
    object_store.add_source(make_config_map("second", {"a": "2"}))
    target = make_target("t1")
    resource_set = make_resource_set(
        resources=(config_map_ref("first"), config_map_ref("second"))
    )
    context = PassContext()
    apply_operation.on_call = context.cancel

    with pytest.raises(PassCancelledError):
        apply_engine.apply_to_target(target, resource_set, context=context)

    assert apply_operation.blobs_for("default/t1") == [b"1"]
    first = _binding(binding_store, target, resource_set, config_map_ref("first"))
    assert first is not None
    assert first.applied
    assert _binding(binding_store, target, resource_set, config_map_ref("second")) is None


def test_cancellation_keeps_failures_collected_earlier(
    apply_engine: ApplyEngine,
    object_store: FakeObjectStore,
    apply_operation: RecordingApplyOperation,
    binding_store: InMemoryBindingStore,
) -> None:
    object_store.add_source(make_config_map("first", {"a": "1"}))
    object_store.add_source(make_config_map("second", {"a": "2"}))
    target = make_target("t1")
    resource_set = make_resource_set(
        resources=(config_map_ref("first"), config_map_ref("second"))
    )
    context = PassContext()
    apply_operation.on_call = context.cancel
    apply_operation.failing = {b"1"}

    with pytest.raises(AggregateReconcileError) as excinfo:
        apply_engine.apply_to_target(target, resource_set, context=context)

    failed, cancelled = excinfo.value.errors
    assert isinstance(failed, ApplyFailedError)
    assert isinstance(cancelled, PassCancelledError)
    assert excinfo.value.cancelled
    assert apply_operation.blobs_for("default/t1") == [b"1"]
    first = _binding(binding_store, target, resource_set, config_map_ref("first"))
    assert first is not None
    assert not first.applied


@pytest.fixture
def persistent_apply_engine(
    object_store: FakeObjectStore,
    client_provider: FakeClientProvider,
    apply_operation: RecordingApplyOperation,
    sqlite_unit_of_work: Callable[[], SqlAlchemyBindingUnitOfWork],
) -> ApplyEngine:
    ticks = itertools.count()
    return ApplyEngine(
        store=object_store,
        client_provider=client_provider,
        apply_operation=apply_operation,
        unit_of_work_factory=sqlite_unit_of_work,
        clock=lambda: FIXED_NOW + timedelta(seconds=next(ticks)),
    )


def _stored(
    unit_of_work: Callable[[], SqlAlchemyBindingUnitOfWork],
    target: Target,
) -> TargetBinding:
    with unit_of_work() as uow:
        stored = uow.repositories.bindings.get(target.key)
    assert stored is not None
    return stored


def test_only_fully_applied_refs_are_recorded_as_applied(
    persistent_apply_engine: ApplyEngine,
    object_store: FakeObjectStore,
    apply_operation: RecordingApplyOperation,
    sqlite_unit_of_work: Callable[[], SqlAlchemyBindingUnitOfWork],
) -> None:
    for name, value in (("one", "1"), ("two", "2"), ("three", "3")):
        object_store.add_source(make_config_map(name, {"a": value}))
    apply_operation.failing = {b"2"}
    target = make_target("t1")
    resource_set = make_resource_set(
        resources=(config_map_ref("one"), config_map_ref("two"), config_map_ref("three"))
    )

    with pytest.raises(AggregateReconcileError):
        persistent_apply_engine.apply_to_target(target, resource_set)

    record = _stored(sqlite_unit_of_work, target).get(resource_set.meta.name)
    assert record is not None
    assert {binding.ref.name: binding.applied for binding in record.resources} == {
        "one": True,
        "two": False,
        "three": True,
    }


def test_repeated_pass_leaves_stored_binding_unchanged(
    persistent_apply_engine: ApplyEngine,
    object_store: FakeObjectStore,
    apply_operation: RecordingApplyOperation,
    sqlite_unit_of_work: Callable[[], SqlAlchemyBindingUnitOfWork],
) -> None:
    object_store.add_source(make_config_map("one", {"a": "1"}))
    object_store.add_source(make_secret("two", {"b": "2"}))
    target = make_target("t1")
    resource_set = make_resource_set(resources=(config_map_ref("one"), secret_ref("two")))

    persistent_apply_engine.apply_to_target(target, resource_set)
    first_pass = _stored(sqlite_unit_of_work, target)
    calls = list(apply_operation.calls)
    patches = list(object_store.patches)

    persistent_apply_engine.apply_to_target(target, resource_set)

    assert _stored(sqlite_unit_of_work, target) == first_pass
    assert apply_operation.calls == calls
    assert object_store.patches == patches
