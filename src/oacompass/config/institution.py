"""Institution-level settings and per-user preferences."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from oacompass.domain.model.fields import (
    NO_SECONDARY_FIELD,
    UsernameField,
    parse_secondary_field,
    parse_username_field,
)
from oacompass.domain.ports.settings import SettingsStoreError

from .env import optional_env_var

if TYPE_CHECKING:
    from collections.abc import Mapping

    from oacompass.domain.ports.settings import SettingsStore

log = getLogger(__name__)

DEFAULT_RELAY_BASE_URL = "http://127.0.0.1:8081"
DEFAULT_ID_TYPE_CODE = "02"


@dataclass(frozen=True, slots=True)
class InstitutionConfig:
    """Snapshot of the institution settings consumed by the workflows."""

    relay_base_url: str = DEFAULT_RELAY_BASE_URL
    id_type_code: str = DEFAULT_ID_TYPE_CODE
    primary_field: UsernameField = UsernameField.JOB_DESCRIPTION
    secondary_field: UsernameField | None = UsernameField.IDENTIFIER_SLOT
    disallowed_email_domain: str | None = None
    show_debug_panel: bool = True

    def to_mapping(self) -> dict[str, object]:
        return {
            "proxyBaseUrl": self.relay_base_url,
            "oaIdTypeCode": self.id_type_code,
            "oaPrimaryField": self.primary_field.value,
            "oaSecondaryField": (
                self.secondary_field.value if self.secondary_field else NO_SECONDARY_FIELD
            ),
            "disallowedEmailDomain": self.disallowed_email_domain or "",
            "showDebugPanel": self.show_debug_panel,
        }


@dataclass(frozen=True, slots=True)
class UserPreferences:
    show_debug_panel: bool | None = None

    def to_mapping(self) -> dict[str, object]:
        if self.show_debug_panel is None:
            return {}
        return {"showDebugPanel": self.show_debug_panel}


class _InstitutionSettings(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    relay_base_url: str | None = Field(default=None, alias="proxyBaseUrl")
    id_type_code: str | None = Field(default=None, alias="oaIdTypeCode")
    primary_field: str | None = Field(default=None, alias="oaPrimaryField")
    secondary_field: str | None = Field(default=None, alias="oaSecondaryField")
    disallowed_email_domain: str | None = Field(default=None, alias="disallowedEmailDomain")
    show_debug_panel: bool | None = Field(default=None, alias="showDebugPanel")

    @field_validator(
        "relay_base_url",
        "id_type_code",
        "primary_field",
        "secondary_field",
        "disallowed_email_domain",
        mode="before",
    )
    @classmethod
    def _stringify(cls, value: object) -> object:
        if value is None:
            return None
        return str(value).strip()


def _default_relay_base_url() -> str:
    return optional_env_var("OA_RELAY_BASE_URL", DEFAULT_RELAY_BASE_URL)


def _select_relay_base_url(configured: str | None) -> str:
    if not configured:
        return _default_relay_base_url()
    if not configured.startswith("https://"):
        log.warning("Ignoring non-HTTPS relay base URL from configuration: %s", configured)
        return _default_relay_base_url()
    return configured.rstrip("/")


def _normalize_domain(value: str | None) -> str | None:
    if not value:
        return None
    return value.strip().lstrip("@").lower() or None


def parse_institution_config(values: Mapping[str, object]) -> InstitutionConfig:
    """Merge stored settings over the defaults; malformed entries fall back with a warning."""

    settings = _InstitutionSettings.model_validate(dict(values))
    defaults = InstitutionConfig()

    primary = defaults.primary_field
    if settings.primary_field:
        try:
            primary = parse_username_field(settings.primary_field)
        except ValueError:
            log.warning("Ignoring invalid primary field setting: %s", settings.primary_field)

    secondary = defaults.secondary_field
    if settings.secondary_field is not None:
        try:
            secondary = parse_secondary_field(settings.secondary_field)
        except ValueError:
            log.warning("Ignoring invalid secondary field setting: %s", settings.secondary_field)

    return InstitutionConfig(
        relay_base_url=_select_relay_base_url(settings.relay_base_url),
        id_type_code=settings.id_type_code or DEFAULT_ID_TYPE_CODE,
        primary_field=primary,
        secondary_field=secondary,
        disallowed_email_domain=_normalize_domain(settings.disallowed_email_domain),
        show_debug_panel=(
            defaults.show_debug_panel
            if settings.show_debug_panel is None
            else settings.show_debug_panel
        ),
    )


def load_institution_config(store: SettingsStore) -> InstitutionConfig:
    """Read institution settings, falling back to defaults if retrieval fails."""

    try:
        values = store.get()
        return parse_institution_config(values)
    except (SettingsStoreError, ValidationError) as exc:
        log.warning("Falling back to default institution settings: %s", exc)
        return InstitutionConfig(relay_base_url=_default_relay_base_url())


def load_user_preferences(store: SettingsStore) -> UserPreferences:
    try:
        values = store.get()
    except SettingsStoreError as exc:
        log.warning("Ignoring unreadable user preferences: %s", exc)
        return UserPreferences()
    show_debug = values.get("showDebugPanel")
    return UserPreferences(show_debug_panel=show_debug if isinstance(show_debug, bool) else None)


def save_user_preferences(store: SettingsStore, preferences: UserPreferences) -> None:
    store.set(preferences.to_mapping())


def effective_show_debug(institution: InstitutionConfig, preferences: UserPreferences) -> bool:
    """User preference overrides the institution default for the debug panel."""

    if preferences.show_debug_panel is not None:
        return preferences.show_debug_panel
    return institution.show_debug_panel
