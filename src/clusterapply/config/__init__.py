"""Application configuration helpers."""

from __future__ import annotations

from .env import env_flag, env_float, optional_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .reconciler import get_reconciler_options
from .remote import RemoteConfig, get_remote_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "MissingConfigurationError",
    "RateLimit",
    "RemoteConfig",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "env_flag",
    "env_float",
    "get_database_config",
    "get_reconciler_options",
    "get_remote_config",
    "get_storage_config",
    "optional_env_var",
    "require_env_vars",
]
