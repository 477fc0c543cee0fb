"""Power switch entities for Home Connect appliances."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from homeassistant.components.switch import SwitchEntity
from homeassistant.exceptions import HomeAssistantError

from .api import HomeConnectApiClientError
from .const import ATTR_POWER_STATE, DOMAIN
from .entity import HomeConnectEntity

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback

    from .coordinator import HomeConnectCoordinator
    from .models import Appliance

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up a power switch for every tracked appliance."""
    coordinator: HomeConnectCoordinator = hass.data[DOMAIN][entry.entry_id][
        "coordinator"
    ]
    async_add_entities(
        HomeConnectPowerSwitch(coordinator, state.appliance)
        for state in coordinator.states.values()
    )


class HomeConnectPowerSwitch(HomeConnectEntity, SwitchEntity):
    """Switch for the PowerState setting of an appliance."""

    _attr_name = "Power"

    def __init__(
        self, coordinator: HomeConnectCoordinator, appliance: Appliance
    ) -> None:
        """Initialize the power switch."""
        super().__init__(coordinator, appliance, "power")

    @property
    def is_on(self) -> bool | None:
        """Return True if the appliance reports PowerState On."""
        power_state = self.appliance_data.get(ATTR_POWER_STATE)
        if power_state is None:
            return None
        return power_state == "On"

    async def async_turn_on(self, **kwargs: Any) -> None:  # noqa: ARG002
        """Switch the appliance on."""
        await self._async_set_power(on=True)

    async def async_turn_off(self, **kwargs: Any) -> None:  # noqa: ARG002
        """Switch the appliance off."""
        await self._async_set_power(on=False)

    async def _async_set_power(self, *, on: bool) -> None:
        ha_id = self.appliance.ha_id
        try:
            await self.coordinator.client.async_set_power_state(ha_id, on)
        except HomeConnectApiClientError as err:
            _LOGGER.exception("Failed to set power state of %s", ha_id)
            error_msg = f"Failed to set power state of {ha_id}: {err}"
            raise HomeAssistantError(error_msg) from err
        _LOGGER.debug("Power of %s set to %s", ha_id, "on" if on else "off")
