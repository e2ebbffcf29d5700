from __future__ import annotations

import pytest

from clusterapply.domain.errors import ListFailedError, SelectorInvalidError
from clusterapply.domain.model import ObjectKey
from clusterapply.domain.reconciliation import (
    map_target_to_resource_sets,
    select_targets,
    target_labels_changed,
)
from clusterapply.domain.selectors import LabelSelector, LabelSelectorRequirement

from tests.helpers.resources import FakeObjectStore, make_resource_set, make_target


def test_label_change_detection() -> None:
    before = make_target("t1", {"env": "dev"})

    assert target_labels_changed(None, before)
    assert not target_labels_changed(before, make_target("t1", {"env": "dev"}))
    assert target_labels_changed(before, make_target("t1", {"env": "prod"}))
    assert target_labels_changed(before, make_target("t1", {"env": "dev", "tier": "web"}))


def test_maps_target_to_selecting_resource_sets(object_store: FakeObjectStore) -> None:
    object_store.add_resource_set(make_resource_set("prod", match_labels={"env": "prod"}))
    object_store.add_resource_set(make_resource_set("web", match_labels={"tier": "web"}))
    object_store.add_resource_set(make_resource_set("dev", match_labels={"env": "dev"}))
    object_store.add_resource_set(
        make_resource_set("elsewhere", match_labels={"env": "prod"}, namespace="other")
    )

    keys = map_target_to_resource_sets(
        object_store, make_target("t1", {"env": "prod", "tier": "web"})
    )

    assert keys == [ObjectKey("default", "prod"), ObjectKey("default", "web")]


def test_empty_selectors_are_ignored(object_store: FakeObjectStore) -> None:
    object_store.add_resource_set(make_resource_set("nothing"))
    object_store.add_resource_set(make_resource_set("blank", selector=LabelSelector()))
    object_store.add_resource_set(make_resource_set("prod", match_labels={"env": "prod"}))

    keys = map_target_to_resource_sets(object_store, make_target("t1", {"env": "prod"}))

    assert keys == [ObjectKey("default", "prod")]


def test_invalid_selector_fails_the_mapping(object_store: FakeObjectStore) -> None:
    object_store.add_resource_set(make_resource_set("prod", match_labels={"env": "prod"}))
    object_store.add_resource_set(
        make_resource_set(
            "broken",
            selector=LabelSelector(
                match_expressions=(LabelSelectorRequirement(key="env", operator="Near"),)
            ),
        )
    )

    with pytest.raises(SelectorInvalidError):
        map_target_to_resource_sets(object_store, make_target("t1", {"env": "prod"}))


def test_list_failure_is_wrapped(object_store: FakeObjectStore) -> None:
    object_store.list_resource_sets_error = TimeoutError("slow store")

    with pytest.raises(ListFailedError, match="slow store"):
        map_target_to_resource_sets(object_store, make_target("t1"))


def test_mapping_is_the_inverse_of_selection(object_store: FakeObjectStore) -> None:
    object_store.targets = [
        make_target("t1", {"env": "prod"}),
        make_target("t2", {"env": "dev", "tier": "web"}),
        make_target("t3", {"env": "prod", "tier": "web"}),
        make_target("t4"),
    ]
    resource_sets = [
        make_resource_set("prod", match_labels={"env": "prod"}),
        make_resource_set("web", match_labels={"tier": "web"}),
        make_resource_set(
            "not-dev",
            selector=LabelSelector(
                match_expressions=(
                    LabelSelectorRequirement(key="env", operator="NotIn", values=("dev",)),
                )
            ),
        ),
        make_resource_set("none"),
    ]
    for resource_set in resource_sets:
        object_store.add_resource_set(resource_set)

    for target in object_store.targets:
        mapped = set(map_target_to_resource_sets(object_store, target))
        for resource_set in resource_sets:
            selected = {t.key for t in select_targets(object_store, resource_set)}
            assert (resource_set.key in mapped) == (target.key in selected)
