"""Protocols implemented by the adapters."""

from __future__ import annotations

from .identity import IdentityProviderGateway
from .records import PatronRecordStore, SearchPage
from .settings import SettingsStore, SettingsStoreError

__all__ = [
    "IdentityProviderGateway",
    "PatronRecordStore",
    "SearchPage",
    "SettingsStore",
    "SettingsStoreError",
]
