"""Event normalization for the Home Connect event stream.

Raw ``data:`` chunks are decoded into NormalizedEvent records, and each
record is mapped onto the attribute schema of the appliance type through
the tables in ``mappings``.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from typing import Any

from .const import (
    ATTR_OPERATION_STATE,
    ATTR_POWER_STATE,
    ATTR_PROGRAM_PROGRESS,
    REMAINING_PROGRAM_TIME_KEY,
    ZERO_REMAINING_TIME_STATES,
)
from .mappings import ValueTransform, mapping_table
from .models import ApplianceType, NormalizedEvent

_LOGGER = logging.getLogger(__name__)

DATA_PREFIX = "data:"
PROGRESS_COMPLETE = 100


def extract_enum(value: Any) -> Any:
    """Return the text after the final ``.`` of a dotted enum value."""
    if not isinstance(value, str):
        return value
    return value.rsplit(".", 1)[-1]


def format_duration(seconds: Any) -> str | None:
    """Format seconds as zero-padded ``HH:MM``, dropping sub-minute precision."""
    try:
        total = abs(int(seconds))
    except (TypeError, ValueError):
        return None
    return f"{total // 3600:02d}:{(total % 3600) // 60:02d}"


def _contact(value: Any) -> str:
    return "open" if str(extract_enum(value)).lower() == "open" else "closed"


_TRANSFORMS: dict[ValueTransform, Callable[[NormalizedEvent], Any]] = {
    ValueTransform.IDENTITY: lambda event: event.raw_value,
    ValueTransform.ENUM_SUFFIX: lambda event: extract_enum(event.raw_value),
    ValueTransform.DURATION: lambda event: format_duration(event.raw_value),
    ValueTransform.DISPLAY: lambda event: (
        event.display_value or extract_enum(event.raw_value)
    ),
    ValueTransform.CONTACT: lambda event: _contact(event.raw_value),
}


def parse_event_chunk(raw_chunk: str, ha_id: str) -> list[NormalizedEvent]:
    """Decode a streamed ``data:`` chunk into normalized events.

    Chunks without the ``data:`` framing, bodies that are not JSON objects
    and missing or malformed ``items`` all yield an empty list.
    """
    if not raw_chunk or not raw_chunk.startswith(DATA_PREFIX):
        return []

    payload = raw_chunk[len(DATA_PREFIX) :].strip()
    if not payload.startswith("{"):
        return []

    try:
        body = json.loads(payload)
    except ValueError as err:
        _LOGGER.debug("Dropping malformed event payload (%s): %s", err, payload)
        return []

    items = body.get("items") if isinstance(body, dict) else None
    if not isinstance(items, list):
        return []

    events = []
    for item in items:
        if not isinstance(item, dict) or not item.get("key"):
            continue
        value = item.get("value")
        display_value = item.get("displayvalue")
        if display_value is None and value is not None:
            display_value = str(value)
        events.append(
            NormalizedEvent(
                ha_id=ha_id,
                key=item["key"],
                raw_value=value,
                display_value=display_value,
            )
        )
    return events


def accepts_zero_remaining_time(current: Mapping[str, Any]) -> bool:
    """Return True if a remaining time of zero agrees with the known state.

    The vendor occasionally emits a stale zero in the middle of a cycle, so
    a zero is only believed once the program is over, complete, or the
    appliance is off.
    """
    if current.get(ATTR_OPERATION_STATE) in ZERO_REMAINING_TIME_STATES:
        return True
    if current.get(ATTR_POWER_STATE) == "Off":
        return True
    try:
        return int(current.get(ATTR_PROGRAM_PROGRESS)) >= PROGRESS_COMPLETE
    except (TypeError, ValueError):
        return False


class EventNormalizer:
    """Maps normalized events onto the attribute schema of one appliance type."""

    def __init__(self, appliance_type: ApplianceType) -> None:
        """Resolve the mapping table for the appliance type."""
        self.appliance_type = appliance_type
        self._table = mapping_table(appliance_type)

    @property
    def attributes(self) -> list[str]:
        """Return every attribute name the table can produce, in table order."""
        names: dict[str, None] = {}
        for mappings in self._table.values():
            for mapping in mappings:
                names.setdefault(mapping.attribute)
        return list(names)

    def normalize(self, raw_chunk: str, ha_id: str) -> list[NormalizedEvent]:
        """Decode a raw stream chunk for the given appliance."""
        return parse_event_chunk(raw_chunk, ha_id)

    def handles(self, key: str) -> bool:
        """Return True if the key is part of this appliance type's table."""
        return key in self._table

    def to_attributes(
        self, event: NormalizedEvent, current: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Resolve the attribute updates produced by an event.

        Args:
            event: Event to map.
            current: Last known attribute values of the appliance.

        Returns:
            Attribute name to new value. Empty for unknown keys and for
            suppressed readings.

        """
        mappings = self._table.get(event.key)
        if mappings is None:
            _LOGGER.debug(
                "Unhandled event for %s: %s = %s",
                event.ha_id,
                event.key,
                event.raw_value,
            )
            return {}

        if (
            event.key == REMAINING_PROGRAM_TIME_KEY
            and event.raw_value == 0
            and not accepts_zero_remaining_time(current)
        ):
            _LOGGER.debug(
                "Suppressing transient zero remaining time for %s (state=%s)",
                event.ha_id,
                current.get(ATTR_OPERATION_STATE),
            )
            return {}

        return {
            mapping.attribute: _TRANSFORMS[mapping.transform](event)
            for mapping in mappings
        }
