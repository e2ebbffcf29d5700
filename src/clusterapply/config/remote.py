"""Remote target access configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final

from .env import env_flag, env_float, optional_env_var, require_env_vars
from .http_resilience import RateLimit, RetryPolicy

TOKEN_ENV_VAR: Final[str] = "CLUSTERAPPLY_TARGET_TOKEN"
DEFAULT_TARGET_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True, slots=True)
class RemoteConfig:
    """How to reach targets; one bearer token is shared by every target."""

    token: str | None = None
    timeout_seconds: float = DEFAULT_TARGET_TIMEOUT_SECONDS
    verify_tls: bool = True
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    ratelimit: RateLimit | None = field(
        default_factory=lambda: RateLimit(max_calls=10, per_seconds=1.0)
    )


def get_remote_config(*, require_token: bool = False) -> RemoteConfig:
    if require_token:
        token: str | None = require_env_vars([TOKEN_ENV_VAR])[TOKEN_ENV_VAR]
    else:
        token = optional_env_var(TOKEN_ENV_VAR)
    return RemoteConfig(
        token=token,
        timeout_seconds=env_float(
            "CLUSTERAPPLY_TARGET_TIMEOUT", default=DEFAULT_TARGET_TIMEOUT_SECONDS
        ),
        verify_tls=env_flag("CLUSTERAPPLY_TARGET_VERIFY_TLS", default=True),
    )
