"""Base entity for Home Connect appliances."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DOMAIN

if TYPE_CHECKING:
    from .coordinator import HomeConnectCoordinator
    from .models import Appliance


class HomeConnectEntity(CoordinatorEntity["HomeConnectCoordinator"]):
    """Entity bound to one appliance of the coordinator."""

    _attr_has_entity_name = True

    def __init__(
        self, coordinator: HomeConnectCoordinator, appliance: Appliance, key: str
    ) -> None:
        """Initialize the entity for an appliance attribute."""
        super().__init__(coordinator)
        self.appliance = appliance
        self._attr_unique_id = f"{appliance.ha_id}-{key}"
        self._attr_device_info = DeviceInfo(
            identifiers={(DOMAIN, appliance.ha_id)},
            name=appliance.name,
            manufacturer=appliance.brand,
            model=appliance.vib,
        )

    @property
    def appliance_data(self) -> dict[str, Any]:
        """Return the attribute values of the appliance."""
        return (self.coordinator.data or {}).get(self.appliance.ha_id, {})

    @property
    def available(self) -> bool:
        """Return True while the appliance is tracked."""
        return super().available and self.appliance.ha_id in self.coordinator.states
