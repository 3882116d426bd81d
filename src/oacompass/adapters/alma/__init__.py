"""Public interface for the Alma users adapter."""

from __future__ import annotations

from .client import AlmaAPIError, AlmaClient
from .schema import UserSearchResponse

__all__ = ["AlmaAPIError", "AlmaClient", "UserSearchResponse"]
