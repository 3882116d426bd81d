"""Relay service configuration values."""

from __future__ import annotations

from dataclasses import dataclass, field

from .env import optional_env_var, split_env_list
from .errors import ConfigurationError
from .openathens import OpenAthensConfig, get_openathens_config
from .policies import PolicyTable, get_policy_table

DEFAULT_RELAY_HOST = "127.0.0.1"
DEFAULT_RELAY_PORT = 8081
SERVICE_NAME = "oa-proxy"


@dataclass(frozen=True, slots=True)
class RelayConfig:
    openathens: OpenAthensConfig = field(default_factory=OpenAthensConfig)
    policies: PolicyTable = field(default_factory=PolicyTable)
    allowed_origins: tuple[str, ...] = ()
    host: str = DEFAULT_RELAY_HOST
    port: int = DEFAULT_RELAY_PORT


def _parse_port(raw: str) -> int:
    try:
        port = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid PORT value: {raw}") from exc
    if not 0 < port < 65536:
        raise ConfigurationError(f"PORT out of range: {port}")
    return port


def get_relay_config() -> RelayConfig:
    return RelayConfig(
        openathens=get_openathens_config(),
        policies=get_policy_table(),
        allowed_origins=split_env_list("ALLOWED_ORIGINS"),
        host=optional_env_var("HOST", DEFAULT_RELAY_HOST),
        port=_parse_port(optional_env_var("PORT", str(DEFAULT_RELAY_PORT))),
    )
