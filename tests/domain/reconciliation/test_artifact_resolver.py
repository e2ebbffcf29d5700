from __future__ import annotations

import pytest

from clusterapply.domain.errors import (
    ArtifactRetrievalError,
    ObjectNotFoundError,
    UnsupportedArtifactSubtypeError,
)
from clusterapply.domain.model import ArtifactRef
from clusterapply.domain.reconciliation import ArtifactResolver

from tests.helpers.resources import (
    FakeObjectStore,
    config_map_ref,
    make_config_map,
    make_secret,
    secret_ref,
)


def test_resolves_config_map(object_store: FakeObjectStore) -> None:
    object_store.add_source(make_config_map("addons", {"a": "1"}))

    artifact = ArtifactResolver(object_store).resolve(config_map_ref("addons"), "default")

    assert artifact is not None
    assert artifact.ref == config_map_ref("addons")
    assert artifact.content == {"a": "1"}
    assert not artifact.is_secret


def test_resolves_secret_with_recognised_subtype(object_store: FakeObjectStore) -> None:
    object_store.add_source(make_secret("creds", {"a": "kind: Thing"}))

    artifact = ArtifactResolver(object_store).resolve(secret_ref("creds"), "default")

    assert artifact is not None
    assert artifact.is_secret


def test_secret_with_other_subtype_is_rejected(object_store: FakeObjectStore) -> None:
    object_store.add_source(make_secret("creds", {"a": "x"}, subtype="Opaque"))

    with pytest.raises(UnsupportedArtifactSubtypeError, match="Opaque"):
        ArtifactResolver(object_store).resolve(secret_ref("creds"), "default")


def test_missing_artifact_raises_retrieval_error(object_store: FakeObjectStore) -> None:
    with pytest.raises(ArtifactRetrievalError) as excinfo:
        ArtifactResolver(object_store).resolve(config_map_ref("absent"), "default")

    assert isinstance(excinfo.value.__cause__, ObjectNotFoundError)


def test_artifacts_are_only_visible_in_their_namespace(object_store: FakeObjectStore) -> None:
    object_store.add_source(make_config_map("addons", {"a": "1"}, namespace="other"))

    with pytest.raises(ArtifactRetrievalError):
        ArtifactResolver(object_store).resolve(config_map_ref("addons"), "default")


def test_missing_data_raises(object_store: FakeObjectStore) -> None:
    object_store.add_source(make_config_map("addons", None))

    with pytest.raises(ArtifactRetrievalError, match="missing data"):
        ArtifactResolver(object_store).resolve(config_map_ref("addons"), "default")


def test_unknown_kind_is_ignored(object_store: FakeObjectStore) -> None:
    ref = ArtifactRef(kind="Deployment", name="addons")

    assert ArtifactResolver(object_store).resolve(ref, "default") is None
