"""Public interface for the OpenAthens admin API adapter."""

from __future__ import annotations

from .client import OpenAthensClient, OpenAthensResponse
from .gateway import (
    ALREADY_EXISTS_REASON,
    OpenAthensGateway,
    normalize_username,
    validate_create_payload,
)

__all__ = [
    "ALREADY_EXISTS_REASON",
    "OpenAthensClient",
    "OpenAthensGateway",
    "OpenAthensResponse",
    "normalize_username",
    "validate_create_payload",
]
