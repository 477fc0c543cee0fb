"""Data models for Home Connect SSE integration."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class ApplianceType(StrEnum):
    """Appliance types supported by the integration."""

    COFFEE_MAKER = "CoffeeMaker"
    DISHWASHER = "Dishwasher"
    DRYER = "Dryer"
    FRIDGE_FREEZER = "FridgeFreezer"
    HOB = "Hob"
    HOOD = "Hood"
    OVEN = "Oven"
    WASHER = "Washer"
    WASHER_DRYER = "WasherDryer"
    CLEANING_ROBOT = "CleaningRobot"
    COOK_PROCESSOR = "CookProcessor"
    WINE_COOLER = "WineCooler"


_TYPE_ALIASES = {
    "Freezer": ApplianceType.FRIDGE_FREEZER,
    "Refrigerator": ApplianceType.FRIDGE_FREEZER,
}


def resolve_appliance_type(value: str | None) -> ApplianceType | None:
    """Map a vendor type string to an ApplianceType, or None if unsupported."""
    if not value:
        return None
    if value in _TYPE_ALIASES:
        return _TYPE_ALIASES[value]
    try:
        return ApplianceType(value)
    except ValueError:
        return None


class StreamStatus(StrEnum):
    """Connection state of an appliance event stream."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass(frozen=True)
class OAuthToken:
    """Represents an OAuth token pair with its expiration in epoch ms."""

    access_token: str
    refresh_token: str
    expires_at: int

    def needs_refresh(self, now_ms: int, margin_ms: int) -> bool:
        """Return True once the token is inside the refresh margin."""
        return now_ms >= self.expires_at - margin_ms

    def is_expired(self, now_ms: int) -> bool:
        """Return True once the token is past its natural expiry."""
        return now_ms >= self.expires_at


@dataclass(frozen=True)
class Appliance:
    """Represents a paired home appliance.

    Attributes:
        ha_id: Stable vendor identifier.
        type: Appliance type.
        name: Human-readable appliance name.

    """

    ha_id: str
    type: ApplianceType
    name: str
    brand: str | None = None
    vib: str | None = None
    connected: bool = False


@dataclass(frozen=True, slots=True)
class NormalizedEvent:
    """A single decoded event item from the appliance stream."""

    ha_id: str
    key: str
    raw_value: Any
    display_value: str | None

    def as_dict(self) -> dict[str, Any]:
        """Return the event in the vendor's inbound event shape."""
        return {
            "haId": self.ha_id,
            "key": self.key,
            "value": self.raw_value,
            "displayvalue": self.display_value,
        }
