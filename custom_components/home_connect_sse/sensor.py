"""Sensor entities for Home Connect appliance attributes.

Every attribute of an appliance type's mapping table gets one sensor, and
each appliance gets a diagnostic sensor for its event stream connection.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any

from homeassistant.components.sensor import SensorDeviceClass, SensorEntity
from homeassistant.const import EntityCategory

from .const import ATTR_STREAM_STATUS, DOMAIN
from .entity import HomeConnectEntity
from .models import StreamStatus

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback

    from .coordinator import HomeConnectCoordinator
    from .models import Appliance

_LOGGER = logging.getLogger(__name__)

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def attribute_name(attribute: str) -> str:
    """Turn a camelCase attribute into a readable entity name."""
    words = _CAMEL_BOUNDARY.sub(" ", attribute).lower()
    return words[:1].upper() + words[1:]


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up sensors for every tracked appliance."""
    coordinator: HomeConnectCoordinator = hass.data[DOMAIN][entry.entry_id][
        "coordinator"
    ]

    entities: list[SensorEntity] = []
    for ha_id, state in coordinator.states.items():
        entities.extend(
            HomeConnectAttributeSensor(coordinator, state.appliance, attribute)
            for attribute in state.normalizer.attributes
        )
        entities.append(HomeConnectStreamStatusSensor(coordinator, state.appliance))
        _LOGGER.debug(
            "Adding %d sensors for appliance %s",
            len(state.normalizer.attributes) + 1,
            ha_id,
        )
    async_add_entities(entities)


class HomeConnectAttributeSensor(HomeConnectEntity, SensorEntity):
    """Sensor exposing one mapped attribute of an appliance."""

    def __init__(
        self,
        coordinator: HomeConnectCoordinator,
        appliance: Appliance,
        attribute: str,
    ) -> None:
        """Initialize the sensor for an attribute."""
        super().__init__(coordinator, appliance, attribute)
        self.attribute = attribute
        self._attr_name = attribute_name(attribute)

    @property
    def native_value(self) -> Any:
        """Return the attribute value."""
        value = self.appliance_data.get(self.attribute)
        if isinstance(value, bool):
            return "on" if value else "off"
        return value


class HomeConnectStreamStatusSensor(HomeConnectEntity, SensorEntity):
    """Diagnostic sensor with the event stream connection state."""

    _attr_device_class = SensorDeviceClass.ENUM
    _attr_entity_category = EntityCategory.DIAGNOSTIC
    _attr_options = [status.value for status in StreamStatus]
    _attr_name = "Event stream status"

    def __init__(
        self, coordinator: HomeConnectCoordinator, appliance: Appliance
    ) -> None:
        """Initialize the stream status sensor."""
        super().__init__(coordinator, appliance, ATTR_STREAM_STATUS)

    @property
    def native_value(self) -> str | None:
        """Return the stream connection state."""
        return self.appliance_data.get(ATTR_STREAM_STATUS)

    @property
    def available(self) -> bool:
        """Stay available so a dropped stream is visible."""
        return self.appliance.ha_id in self.coordinator.states
