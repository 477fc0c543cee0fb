"""Coordinator for Home Connect SSE integration."""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from functools import partial
from typing import TYPE_CHECKING, Any

from homeassistant.exceptions import ConfigEntryAuthFailed
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed

from . import api
from .appliance import ApplianceState
from .const import ACTIVE_PROGRAM_KEY, DEFAULT_POLL_INTERVAL, DOMAIN
from .router import EventRouter
from .stream import EventStreamClient

if TYPE_CHECKING:
    from collections.abc import Iterable

    import httpx
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant

    from .auth import TokenStore
    from .models import Appliance, StreamStatus

_LOGGER = logging.getLogger(__name__)


class HomeConnectCoordinator(DataUpdateCoordinator[dict[str, dict[str, Any]]]):
    """Coordinator holding the attribute state of every selected appliance.

    State is pushed by the appliance event streams and reloaded from the REST
    status endpoints on every poll. Data maps haId to attribute values.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        config_entry: ConfigEntry,
        session: httpx.AsyncClient,
        token_store: TokenStore,
        client: api.HomeConnectApiClient,
        language: str,
    ) -> None:
        """Initialize the coordinator.

        Args:
            hass: Home Assistant instance.
            config_entry: Config entry the appliances belong to.
            session: HTTP client session shared by REST calls and streams.
            token_store: Source of valid access tokens.
            client: Home Connect REST client.
            language: Accept-Language used for streams.

        """
        super().__init__(
            hass,
            _LOGGER,
            config_entry=config_entry,
            name=DOMAIN,
            update_interval=timedelta(seconds=DEFAULT_POLL_INTERVAL),
        )
        self.session = session
        self.token_store = token_store
        self.client = client
        self.language = language
        self.router = EventRouter()
        self.discovered: dict[str, Appliance] = {}
        self.states: dict[str, ApplianceState] = {}
        self.streams: dict[str, EventStreamClient] = {}
        self.data = {}

    @property
    def appliances(self) -> list[Appliance]:
        """Return the selected appliances."""
        return [state.appliance for state in self.states.values()]

    async def async_setup_appliances(self, selected: Iterable[str] | None) -> None:
        """Discover appliances and track the selected ones.

        Args:
            selected: haIds to track, or None to track every appliance.

        Raises:
            HomeConnectAuthError: If the access token is rejected.
            HomeConnectApiClientError: If discovery fails.

        """
        appliances = await self.client.async_get_appliances()
        self.discovered = {appliance.ha_id: appliance for appliance in appliances}
        wanted = set(selected) if selected is not None else None

        for appliance in appliances:
            if wanted is not None and appliance.ha_id not in wanted:
                _LOGGER.debug("Appliance %s is not selected, skipping", appliance.ha_id)
                continue
            self._add_appliance(appliance)

        self.data = self._snapshot()
        _LOGGER.info(
            "Tracking %d of %d Home Connect appliances",
            len(self.states),
            len(appliances),
        )

    def _add_appliance(self, appliance: Appliance) -> None:
        state = ApplianceState(appliance, on_change=self._handle_state_change)
        self.states[appliance.ha_id] = state
        self.router.register(appliance.ha_id, state)
        self.streams[appliance.ha_id] = EventStreamClient(
            self.session,
            self.token_store,
            appliance.ha_id,
            self.router,
            on_status_change=partial(self._handle_stream_status, appliance.ha_id),
            language=self.language,
        )

    async def async_start_streams(self) -> None:
        """Open the event stream of every tracked appliance."""
        for stream in self.streams.values():
            await stream.async_connect()

    async def async_remove_appliance(self, ha_id: str) -> None:
        """Stop tracking an appliance and close its event stream."""
        stream = self.streams.pop(ha_id, None)
        if stream is not None:
            await stream.async_disconnect()
        self.router.unregister(ha_id)
        self.states.pop(ha_id, None)
        self.data = self._snapshot()
        _LOGGER.info("Stopped tracking appliance %s", ha_id)

    async def async_shutdown_streams(self) -> None:
        """Disconnect every event stream."""
        await asyncio.gather(
            *(stream.async_disconnect() for stream in self.streams.values())
        )

    async def async_shutdown(self) -> None:
        """Disconnect the streams and cancel the coordinator refresh."""
        await self.async_shutdown_streams()
        await super().async_shutdown()

    async def _async_update_data(self) -> dict[str, dict[str, Any]]:
        """Reload status, settings and the active program of each appliance."""
        for ha_id, state in list(self.states.items()):
            try:
                state.apply_items(await self.client.async_get_status(ha_id))
                state.apply_items(await self.client.async_get_settings(ha_id))
                state.apply_program(
                    ACTIVE_PROGRAM_KEY,
                    await self.client.async_get_active_program(ha_id),
                )
            except api.HomeConnectAuthError as err:
                error_msg = f"Authentication error while polling {ha_id}: {err}"
                raise ConfigEntryAuthFailed(error_msg) from err
            except api.HomeConnectApiClientError as err:
                if err.status == api.HTTP_CONFLICT:
                    # Offline appliances answer 409 until they reconnect
                    _LOGGER.debug("Appliance %s is offline, skipping poll", ha_id)
                    continue
                error_msg = f"API error while polling {ha_id}: {err}"
                raise UpdateFailed(error_msg) from err

        _LOGGER.debug("Polled status for %d appliances", len(self.states))
        return self._snapshot()

    def _handle_state_change(self, ha_id: str, changed: dict[str, Any]) -> None:
        _LOGGER.debug("Pushing update of %s: %s", ha_id, list(changed))
        self.data = self._snapshot()
        self.async_update_listeners()

    def _handle_stream_status(self, ha_id: str, status: StreamStatus) -> None:
        state = self.states.get(ha_id)
        if state is not None:
            state.set_stream_status(status)

    def _snapshot(self) -> dict[str, dict[str, Any]]:
        return {ha_id: state.attributes for ha_id, state in self.states.items()}
