from __future__ import annotations

import pytest

from clusterapply.adapters.remote import HttpTargetClientProvider
from clusterapply.config import RateLimit, RemoteConfig
from clusterapply.domain.errors import ClientAcquisitionError

from tests.helpers.resources import make_target


def test_client_is_built_from_target_endpoint_and_config() -> None:
    provider = HttpTargetClientProvider(
        config=RemoteConfig(
            token="secret-token",
            timeout_seconds=4.0,
            verify_tls=False,
            ratelimit=RateLimit(max_calls=2, per_seconds=1.0),
        )
    )

    client = provider.get_client(make_target("t1", endpoint="https://t1.example:6443/"))

    assert client.target_name == "default/t1"
    assert client.endpoint == "https://t1.example:6443"
    resilience = client.resilience
    assert resilience.base_url == "https://t1.example:6443"
    assert resilience.timeout_seconds == 4.0
    assert resilience.verify is False
    assert resilience.ratelimit == RateLimit(max_calls=2, per_seconds=1.0)
    assert resilience.default_headers is not None
    assert resilience.default_headers["Authorization"] == "Bearer secret-token"


def test_no_authorization_header_without_token() -> None:
    client = HttpTargetClientProvider().get_client(make_target("t1"))

    assert client.resilience.default_headers is not None
    assert "Authorization" not in client.resilience.default_headers


def test_clients_are_cached_per_target() -> None:
    provider = HttpTargetClientProvider()
    target = make_target("t1")

    first = provider.get_client(target)
    again = provider.get_client(make_target("t1"))
    other = provider.get_client(make_target("t2"))

    assert again is first
    assert other is not first


def test_endpoint_change_replaces_cached_client() -> None:
    provider = HttpTargetClientProvider()

    first = provider.get_client(make_target("t1", endpoint="https://old.example"))
    second = provider.get_client(make_target("t1", endpoint="https://new.example"))

    assert second is not first
    assert second.endpoint == "https://new.example"


@pytest.mark.parametrize("endpoint", [None, "", "ftp://t1.example", "not a url", "https://"])
def test_unusable_endpoints_raise(endpoint: str | None) -> None:
    with pytest.raises(ClientAcquisitionError):
        HttpTargetClientProvider().get_client(make_target("t1", endpoint=endpoint))
