"""Remote clients for targets reachable over HTTP."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

import httpx

from clusterapply.adapters.http_resilience import ResilienceConfig, ResilientClient
from clusterapply.config.remote import RemoteConfig
from clusterapply.domain.errors import ClientAcquisitionError

if TYPE_CHECKING:
    from collections.abc import Callable

    from clusterapply.domain.model import ObjectKey, Target

log = getLogger(__name__)


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(frozen=True, slots=True)
class RemoteTargetClient:
    """Handle for one target; opens a fresh HTTP client per use."""

    target_name: str
    endpoint: str
    resilience: ResilienceConfig
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory, repr=False
    )

    def open(self) -> ResilientClient:
        return self.client_factory(self.resilience)


@dataclass(slots=True)
class HttpTargetClientProvider:
    """Build and cache one :class:`RemoteTargetClient` per target."""

    config: RemoteConfig = field(default_factory=RemoteConfig)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    _clients: dict[ObjectKey, RemoteTargetClient] = field(default_factory=dict, repr=False)

    def get_client(self, target: Target) -> RemoteTargetClient:
        endpoint = self._validated_endpoint(target)
        cached = self._clients.get(target.key)
        if cached is not None and cached.endpoint == endpoint:
            return cached

        log.debug("Creating remote client for target %s at %s", target.key, endpoint)
        client = RemoteTargetClient(
            target_name=str(target.key),
            endpoint=endpoint,
            resilience=self._resilience_for(target, endpoint),
            client_factory=self.client_factory,
        )
        self._clients[target.key] = client
        return client

    def _resilience_for(self, target: Target, endpoint: str) -> ResilienceConfig:
        headers = {"Accept": "application/json"}
        if self.config.token:
            headers["Authorization"] = f"Bearer {self.config.token}"
        return ResilienceConfig(
            name=f"target:{target.key}",
            base_url=endpoint,
            timeout_seconds=self.config.timeout_seconds,
            verify=self.config.verify_tls,
            retry=self.config.retry,
            ratelimit=self.config.ratelimit,
            default_headers=headers,
        )

    @staticmethod
    def _validated_endpoint(target: Target) -> str:
        if not target.endpoint:
            raise ClientAcquisitionError(f"target {target.key} has no endpoint")
        try:
            url = httpx.URL(target.endpoint)
        except httpx.InvalidURL as exc:
            raise ClientAcquisitionError(
                f"target {target.key} has an invalid endpoint {target.endpoint!r}"
            ) from exc
        if url.scheme not in {"http", "https"} or not url.host:
            raise ClientAcquisitionError(
                f"target {target.key} has an invalid endpoint {target.endpoint!r}"
            )
        return str(url).rstrip("/")


if TYPE_CHECKING:
    from clusterapply.domain.ports import RemoteClient, TargetClientProvider

    _provider_check: TargetClientProvider = HttpTargetClientProvider()
    _client_check: RemoteClient = RemoteTargetClient(
        target_name="", endpoint="", resilience=ResilienceConfig(name="")
    )
