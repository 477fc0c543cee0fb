"""Per-appliance attribute state."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .const import ATTR_STREAM_STATUS
from .models import NormalizedEvent, StreamStatus
from .normalizer import EventNormalizer

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from .models import Appliance

_LOGGER = logging.getLogger(__name__)


class ApplianceState:
    """Last known attribute values of one appliance.

    Attributes are only changed by applying events, either pushed through
    the event stream or loaded from the REST status endpoints, so both paths
    share the same mapping and suppression rules.
    """

    def __init__(
        self,
        appliance: Appliance,
        on_change: Callable[[str, dict[str, Any]], None] | None = None,
    ) -> None:
        """Initialize the state with the mapping table of the appliance type.

        Args:
            appliance: Appliance this state belongs to.
            on_change: Called with the haId and the changed attributes.

        """
        self.appliance = appliance
        self.normalizer = EventNormalizer(appliance.type)
        self._on_change = on_change
        self._attributes: dict[str, Any] = {
            ATTR_STREAM_STATUS: StreamStatus.DISCONNECTED.value,
            "connected": appliance.connected,
        }

    @property
    def ha_id(self) -> str:
        """Return the appliance identifier."""
        return self.appliance.ha_id

    @property
    def attributes(self) -> dict[str, Any]:
        """Return a copy of the current attribute values."""
        return dict(self._attributes)

    def get(self, attribute: str, default: Any = None) -> Any:
        """Return the value of one attribute."""
        return self._attributes.get(attribute, default)

    def apply_event(self, event: NormalizedEvent) -> None:
        """Apply a normalized event to the attribute state."""
        updates = self.normalizer.to_attributes(event, self._attributes)
        self._update(updates)

    def apply_items(self, items: Iterable[dict[str, Any]]) -> None:
        """Apply ``{key, value, displayvalue}`` items from a REST response."""
        for item in items:
            if not isinstance(item, dict) or not item.get("key"):
                continue
            value = item.get("value")
            display_value = item.get("displayvalue")
            self.apply_event(
                NormalizedEvent(
                    ha_id=self.ha_id,
                    key=item["key"],
                    raw_value=value,
                    display_value=(
                        display_value
                        if display_value is not None or value is None
                        else str(value)
                    ),
                )
            )

    def apply_program(self, root_key: str, program: dict[str, Any] | None) -> None:
        """Apply an active or selected program response and its options."""
        if not program:
            return
        self.apply_event(
            NormalizedEvent(
                ha_id=self.ha_id,
                key=root_key,
                raw_value=program.get("key"),
                display_value=program.get("name"),
            )
        )
        self.apply_items(program.get("options", []))

    def set_stream_status(self, status: StreamStatus) -> None:
        """Record the connection state of the appliance event stream."""
        self._update({ATTR_STREAM_STATUS: status.value})

    def _update(self, updates: dict[str, Any]) -> None:
        changed = {
            name: value
            for name, value in updates.items()
            if self._attributes.get(name) != value or name not in self._attributes
        }
        if not changed:
            return
        self._attributes.update(changed)
        _LOGGER.debug("Appliance %s attributes changed: %s", self.ha_id, changed)
        if self._on_change is not None:
            try:
                self._on_change(self.ha_id, changed)
            except Exception:
                _LOGGER.exception("Error in appliance state change callback")
