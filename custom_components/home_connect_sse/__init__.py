from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from homeassistant.const import CONF_CLIENT_ID, CONF_CLIENT_SECRET, Platform
from homeassistant.core import HomeAssistant, callback
from homeassistant.exceptions import ConfigEntryAuthFailed, ConfigEntryNotReady
from homeassistant.helpers import config_validation as cv
from homeassistant.helpers import device_registry as dr

from . import api
from .api import HomeConnectApiClient, create_session_client
from .auth import TokenStore, token_from_data, token_to_data
from .const import (
    CONF_ACCESS_TOKEN,
    CONF_APPLIANCES,
    CONF_LANGUAGE,
    CONF_REFRESH_TOKEN,
    CONF_TOKEN_EXPIRES_AT,
    DEFAULT_LANGUAGE,
    DOMAIN,
)
from .coordinator import HomeConnectCoordinator
from .services import async_setup_services

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.helpers.typing import ConfigType

    from .models import OAuthToken

_LOGGER = logging.getLogger(__name__)

PLATFORMS = [Platform.SENSOR, Platform.SWITCH]

CONFIG_SCHEMA = cv.config_entry_only_config_schema(DOMAIN)


async def async_setup(hass: HomeAssistant, config: ConfigType) -> bool:  # noqa: ARG001
    async_setup_services(hass)
    return True


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    _LOGGER.info("Setting up Home Connect SSE integration for entry %s", entry.entry_id)

    token = token_from_data(entry.data)
    if token is None:
        error_msg = f"Missing token in configuration for entry {entry.entry_id}"
        raise ConfigEntryAuthFailed(error_msg)

    @callback
    def _async_save_token(new_token: OAuthToken | None) -> None:
        data = {
            key: value
            for key, value in entry.data.items()
            if key not in (CONF_ACCESS_TOKEN, CONF_REFRESH_TOKEN, CONF_TOKEN_EXPIRES_AT)
        }
        if new_token is not None:
            data.update(token_to_data(new_token))
        hass.config_entries.async_update_entry(entry, data=data)
        _LOGGER.debug("Stored updated token for entry %s", entry.entry_id)

    session = create_session_client(hass)
    token_store = TokenStore(
        session,
        entry.data[CONF_CLIENT_ID],
        entry.data[CONF_CLIENT_SECRET],
        token=token,
        on_token_update=_async_save_token,
    )
    language = entry.data.get(CONF_LANGUAGE, DEFAULT_LANGUAGE)
    client = HomeConnectApiClient(session, token_store, language)
    coordinator = HomeConnectCoordinator(
        hass, entry, session, token_store, client, language
    )

    try:
        _LOGGER.debug("Fetching appliances from Home Connect API")
        await coordinator.async_setup_appliances(entry.options.get(CONF_APPLIANCES))
    except api.HomeConnectAuthError as err:
        _LOGGER.warning(
            "Authentication failed for entry %s: %s", entry.entry_id, str(err)
        )
        raise ConfigEntryAuthFailed(str(err)) from err
    except api.HomeConnectApiClientError as err:
        _LOGGER.error("API client error for entry %s: %s", entry.entry_id, str(err))
        raise ConfigEntryNotReady(str(err)) from err

    await coordinator.async_config_entry_first_refresh()

    hass.data.setdefault(DOMAIN, {})[entry.entry_id] = {
        "session": session,
        "token_store": token_store,
        "client": client,
        "coordinator": coordinator,
    }
    _LOGGER.debug(
        "Stored data for entry %s: %d appliances",
        entry.entry_id,
        len(coordinator.states),
    )

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    await coordinator.async_start_streams()
    entry.async_on_unload(entry.add_update_listener(async_update_options))
    _LOGGER.info(
        "Successfully setup Home Connect SSE integration for entry %s", entry.entry_id
    )
    return True


async def async_update_options(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Apply a changed appliance selection.

    Deselected appliances are dropped in place; newly selected ones need a
    reload so their entities are created. Token updates also land here and
    leave the selection untouched.
    """
    coordinator: HomeConnectCoordinator = hass.data[DOMAIN][entry.entry_id][
        "coordinator"
    ]
    selected = entry.options.get(CONF_APPLIANCES)
    wanted = set(selected) if selected is not None else set(coordinator.discovered)
    tracked = set(coordinator.states)
    if wanted == tracked:
        return

    if wanted - tracked:
        _LOGGER.info("Appliance selection grew, reloading entry %s", entry.entry_id)
        await hass.config_entries.async_reload(entry.entry_id)
        return

    device_registry = dr.async_get(hass)
    for ha_id in tracked - wanted:
        await coordinator.async_remove_appliance(ha_id)
        device = device_registry.async_get_device(identifiers={(DOMAIN, ha_id)})
        if device is not None:
            device_registry.async_update_device(
                device.id, remove_config_entry_id=entry.entry_id
            )
    coordinator.async_update_listeners()


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    _LOGGER.info("Unloading Home Connect SSE integration for entry %s", entry.entry_id)

    entry_data = hass.data.get(DOMAIN, {}).get(entry.entry_id)
    if entry_data is not None:
        await entry_data["coordinator"].async_shutdown_streams()

    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if unload_ok:
        if DOMAIN in hass.data and entry.entry_id in hass.data[DOMAIN]:
            hass.data[DOMAIN].pop(entry.entry_id)
            _LOGGER.debug("Cleaned up data for entry %s", entry.entry_id)
        _LOGGER.info(
            "Successfully unloaded Home Connect SSE integration for entry %s",
            entry.entry_id,
        )
    else:
        _LOGGER.warning("Failed to unload some platforms for entry %s", entry.entry_id)
    return unload_ok
