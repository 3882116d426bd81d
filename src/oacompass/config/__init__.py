"""Application configuration helpers."""

from __future__ import annotations

from .alma import AlmaConfig, get_alma_config
from .env import optional_env_var, require_env_vars, split_env_list
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .institution import (
    InstitutionConfig,
    UserPreferences,
    effective_show_debug,
    load_institution_config,
    load_user_preferences,
    parse_institution_config,
    save_user_preferences,
)
from .openathens import OpenAthensConfig, get_openathens_config
from .policies import PolicyTable, get_policy_table, load_policy_table
from .relay import RelayConfig, get_relay_config
from .storage import StorageConfig, get_storage_config

__all__ = [
    "AlmaConfig",
    "ConfigurationError",
    "InstitutionConfig",
    "MissingConfigurationError",
    "OpenAthensConfig",
    "PolicyTable",
    "RateLimit",
    "RelayConfig",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "UserPreferences",
    "effective_show_debug",
    "get_alma_config",
    "get_openathens_config",
    "get_policy_table",
    "get_relay_config",
    "get_storage_config",
    "load_institution_config",
    "load_policy_table",
    "load_user_preferences",
    "optional_env_var",
    "parse_institution_config",
    "require_env_vars",
    "save_user_preferences",
    "split_env_list",
]
