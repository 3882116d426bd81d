"""Application wiring: build adapters from configuration and run the relay."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

import uvicorn

from oacompass.adapters.alma import AlmaClient
from oacompass.adapters.relay import create_app
from oacompass.adapters.relay_client import RelayGateway
from oacompass.adapters.settings_store import JsonFileSettingsStore
from oacompass.config import (
    get_alma_config,
    get_relay_config,
    get_storage_config,
    load_institution_config,
    load_user_preferences,
)
from oacompass.domain.workflow import ReconciliationWorkflow

if TYPE_CHECKING:
    from oacompass.config import InstitutionConfig, RelayConfig, StorageConfig, UserPreferences
    from oacompass.domain.ports.identity import IdentityProviderGateway
    from oacompass.domain.ports.records import PatronRecordStore

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SettingsStores:
    institution: JsonFileSettingsStore
    preferences: JsonFileSettingsStore


def build_settings_stores(storage: StorageConfig | None = None) -> SettingsStores:
    storage = storage or get_storage_config()
    return SettingsStores(
        institution=JsonFileSettingsStore(storage.institution_path()),
        preferences=JsonFileSettingsStore(storage.preferences_path()),
    )


def load_settings(
    stores: SettingsStores | None = None,
) -> tuple[InstitutionConfig, UserPreferences]:
    stores = stores or build_settings_stores()
    return load_institution_config(stores.institution), load_user_preferences(stores.preferences)


def build_workflow(
    *,
    institution: InstitutionConfig | None = None,
    gateway: IdentityProviderGateway | None = None,
    records: PatronRecordStore | None = None,
) -> ReconciliationWorkflow:
    """Assemble a workflow from a fresh configuration snapshot.

    Missing collaborators are built from the environment: the relay client for
    OpenAthens and the Alma REST client for patron records.
    """

    if institution is None:
        institution, _ = load_settings()
    effective_gateway = gateway or RelayGateway(base_url=institution.relay_base_url)
    effective_records = records or AlmaClient(config=get_alma_config())
    log.debug(
        "Workflow using relay %s, username fields %s/%s, id type %s",
        institution.relay_base_url,
        institution.primary_field.value,
        institution.secondary_field.value if institution.secondary_field else "none",
        institution.id_type_code,
    )
    return ReconciliationWorkflow(
        gateway=effective_gateway,
        records=effective_records,
        config=institution,
    )


def run_relay(config: RelayConfig | None = None) -> None:
    """Serve the relay with uvicorn until interrupted."""

    config = config or get_relay_config()
    app = create_app(config)
    log.info("oa-proxy listening on %s:%s", config.host, config.port)
    uvicorn.run(app, host=config.host, port=config.port, log_config=None)
