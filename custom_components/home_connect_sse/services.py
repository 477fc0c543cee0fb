"""Program control services for Home Connect appliances."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import voluptuous as vol
from homeassistant.exceptions import HomeAssistantError, ServiceValidationError
from homeassistant.helpers import config_validation as cv

from .api import HomeConnectApiClientError
from .const import (
    ATTR_HA_ID,
    ATTR_KEY,
    ATTR_OPTIONS,
    ATTR_PROGRAM,
    ATTR_VALUE,
    DOMAIN,
    SERVICE_SELECT_PROGRAM,
    SERVICE_SET_PROGRAM_OPTION,
    SERVICE_START_PROGRAM,
    SERVICE_STOP_PROGRAM,
)

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant, ServiceCall

    from .coordinator import HomeConnectCoordinator

_LOGGER = logging.getLogger(__name__)

OPTION_SCHEMA = vol.Schema(
    {
        vol.Required(ATTR_KEY): cv.string,
        vol.Required(ATTR_VALUE): vol.Any(str, int, float, bool),
        vol.Optional("unit"): cv.string,
    }
)

PROGRAM_SCHEMA = vol.Schema(
    {
        vol.Required(ATTR_HA_ID): cv.string,
        vol.Required(ATTR_PROGRAM): cv.string,
        vol.Optional(ATTR_OPTIONS, default=list): vol.All(
            cv.ensure_list, [OPTION_SCHEMA]
        ),
    }
)

STOP_PROGRAM_SCHEMA = vol.Schema({vol.Required(ATTR_HA_ID): cv.string})

OPTION_SERVICE_SCHEMA = vol.Schema(
    {
        vol.Required(ATTR_HA_ID): cv.string,
        vol.Required(ATTR_KEY): cv.string,
        vol.Required(ATTR_VALUE): vol.Any(str, int, float, bool),
    }
)


def find_coordinator(hass: HomeAssistant, ha_id: str) -> HomeConnectCoordinator:
    """Return the coordinator tracking an appliance.

    Raises:
        ServiceValidationError: If no loaded entry tracks the appliance.

    """
    for entry_data in hass.data.get(DOMAIN, {}).values():
        coordinator: HomeConnectCoordinator = entry_data["coordinator"]
        if ha_id in coordinator.states:
            return coordinator
    error_msg = f"Appliance {ha_id} is not tracked by any Home Connect entry"
    raise ServiceValidationError(error_msg)


async def _async_start_program(hass: HomeAssistant, call: ServiceCall) -> None:
    ha_id = call.data[ATTR_HA_ID]
    coordinator = find_coordinator(hass, ha_id)
    await coordinator.client.async_start_program(
        ha_id, call.data[ATTR_PROGRAM], call.data[ATTR_OPTIONS]
    )


async def _async_stop_program(hass: HomeAssistant, call: ServiceCall) -> None:
    ha_id = call.data[ATTR_HA_ID]
    coordinator = find_coordinator(hass, ha_id)
    await coordinator.client.async_stop_program(ha_id)


async def _async_select_program(hass: HomeAssistant, call: ServiceCall) -> None:
    ha_id = call.data[ATTR_HA_ID]
    coordinator = find_coordinator(hass, ha_id)
    await coordinator.client.async_set_selected_program(
        ha_id, call.data[ATTR_PROGRAM], call.data[ATTR_OPTIONS]
    )


async def _async_set_program_option(hass: HomeAssistant, call: ServiceCall) -> None:
    ha_id = call.data[ATTR_HA_ID]
    coordinator = find_coordinator(hass, ha_id)
    await coordinator.client.async_set_selected_program_option(
        ha_id, call.data[ATTR_KEY], call.data[ATTR_VALUE]
    )


_SERVICES: dict[str, tuple[Any, vol.Schema]] = {
    SERVICE_START_PROGRAM: (_async_start_program, PROGRAM_SCHEMA),
    SERVICE_STOP_PROGRAM: (_async_stop_program, STOP_PROGRAM_SCHEMA),
    SERVICE_SELECT_PROGRAM: (_async_select_program, PROGRAM_SCHEMA),
    SERVICE_SET_PROGRAM_OPTION: (_async_set_program_option, OPTION_SERVICE_SCHEMA),
}


def async_setup_services(hass: HomeAssistant) -> None:
    """Register the program control services."""

    def _wrap(handler: Any) -> Any:
        async def _async_handle(call: ServiceCall) -> None:
            _LOGGER.debug("Handling service %s: %s", call.service, call.data)
            try:
                await handler(hass, call)
            except HomeConnectApiClientError as err:
                error_msg = f"Home Connect request failed: {err}"
                raise HomeAssistantError(error_msg) from err

        return _async_handle

    for service, (handler, schema) in _SERVICES.items():
        hass.services.async_register(DOMAIN, service, _wrap(handler), schema=schema)
