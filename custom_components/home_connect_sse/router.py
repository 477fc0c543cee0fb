"""Dispatch of normalized events to the appliance that owns them."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .models import NormalizedEvent

_LOGGER = logging.getLogger(__name__)


class ApplianceEventSink(Protocol):
    """Receiver of the events of one appliance."""

    def apply_event(self, event: NormalizedEvent) -> None:
        """Apply an event to the appliance state."""


class EventRouter:
    """Routes events to registered appliance sinks by haId."""

    def __init__(self) -> None:
        """Initialize an empty router."""
        self._sinks: dict[str, ApplianceEventSink] = {}

    def register(self, ha_id: str, sink: ApplianceEventSink) -> None:
        """Register the sink that owns an appliance."""
        self._sinks[ha_id] = sink

    def unregister(self, ha_id: str) -> None:
        """Forget an appliance, later events for it are dropped."""
        self._sinks.pop(ha_id, None)

    def __contains__(self, ha_id: object) -> bool:
        return ha_id in self._sinks

    def route(self, ha_id: str, event: NormalizedEvent) -> None:
        """Apply an event to the appliance that owns it.

        Events for appliances that are not registered, e.g. unselected
        while their stream was still open, are logged and dropped.
        """
        sink = self._sinks.get(ha_id)
        if sink is None:
            _LOGGER.warning(
                "No appliance registered for haId %s, dropping %s", ha_id, event.key
            )
            return
        sink.apply_event(event)
