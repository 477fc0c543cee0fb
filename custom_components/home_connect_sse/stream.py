"""Server-sent event stream client for Home Connect appliances.

This module keeps one persistent ``text/event-stream`` connection per
appliance, tracks its connect/disconnect life-cycle, and reconnects with an
exponential backoff when the stream drops.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

import httpx

from .api import (
    HomeConnectApiClientError,
    HomeConnectAuthError,
    is_auth_error,
    is_http_error,
)
from .const import (
    APPLIANCE_CONNECTED_KEY,
    BASE_URL,
    DEFAULT_LANGUAGE,
    ENDPOINT_APPLIANCES,
    STREAM_CONNECT_TIMEOUT,
    STREAM_GRACE_PERIOD,
    STREAM_RETRY_BASE,
    STREAM_RETRY_MAX,
)
from .models import NormalizedEvent, StreamStatus
from .normalizer import parse_event_chunk

if TYPE_CHECKING:
    from collections.abc import Callable

    from .auth import TokenStore
    from .router import EventRouter

_LOGGER = logging.getLogger(__name__)

CONTROL_START = "START"
CONTROL_STOP = "STOP"

EVENT_KEEP_ALIVE = "KEEP-ALIVE"
EVENT_CONNECTED = "CONNECTED"
EVENT_DISCONNECTED = "DISCONNECTED"
EVENT_PAIRED = "PAIRED"
EVENT_DEPAIRED = "DEPAIRED"


class EventStreamClient:
    """Event stream connection of a single appliance.

    The stream moves through ``disconnected -> connecting -> connected``.
    A ``STOP`` only becomes a disconnection after the grace period, since
    appliances emit short STOP/START pairs during normal operation. Each
    confirmed disconnection schedules a reconnect at the current retry
    interval and doubles the interval up to the ceiling; a successful
    connection resets it.
    """

    def __init__(
        self,
        session: httpx.AsyncClient,
        token_store: TokenStore,
        ha_id: str,
        router: EventRouter,
        on_status_change: Callable[[StreamStatus], None] | None = None,
        *,
        language: str = DEFAULT_LANGUAGE,
        grace_period: float = STREAM_GRACE_PERIOD,
        retry_base: float = STREAM_RETRY_BASE,
        retry_max: float = STREAM_RETRY_MAX,
    ) -> None:
        """Initialize the stream client.

        Args:
            session: HTTP client session used for the streaming request.
            token_store: Source of valid access tokens.
            ha_id: Appliance whose events are streamed.
            router: Receives every decoded event.
            on_status_change: Called whenever the connection state changes.
            language: Value for the Accept-Language header.
            grace_period: Seconds a STOP may be contradicted by a START.
            retry_base: First reconnect delay in seconds.
            retry_max: Ceiling for the reconnect delay in seconds.

        """
        self._session = session
        self._token_store = token_store
        self.ha_id = ha_id
        self._router = router
        self._on_status_change = on_status_change
        self._language = language
        self._grace_period = grace_period
        self._retry_base = retry_base
        self._retry_max = retry_max

        self._status = StreamStatus.DISCONNECTED
        self._retry_interval = retry_base
        self._shutdown = False
        self._listen_task: asyncio.Task[None] | None = None
        self._grace_task: asyncio.Task[None] | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._connect_lock = asyncio.Lock()

        # Fields of the SSE frame being read
        self._event_type: str | None = None
        self._event_id: str | None = None

    @property
    def status(self) -> StreamStatus:
        """Return the connection state."""
        return self._status

    @property
    def connected(self) -> bool:
        """Return True if the stream is connected."""
        return self._status is StreamStatus.CONNECTED

    @property
    def retry_interval(self) -> float:
        """Return the delay used for the next reconnect."""
        return self._retry_interval

    @property
    def url(self) -> str:
        """Return the event stream URL of the appliance."""
        return f"{BASE_URL}{ENDPOINT_APPLIANCES}/{self.ha_id}/events"

    async def async_connect(self) -> None:
        """Open the event stream, replacing any previous connection."""
        async with self._connect_lock:
            if (
                self._status is StreamStatus.CONNECTING
                and self._listen_task is not None
                and not self._listen_task.done()
            ):
                _LOGGER.debug("Connect already in progress for %s", self.ha_id)
                return

            self._shutdown = False
            await self._async_close_stream()
            _LOGGER.info("Connecting to the event stream of appliance %s", self.ha_id)
            self._set_status(StreamStatus.CONNECTING)
            self._listen_task = asyncio.create_task(
                self._async_listen(), name=f"Home Connect events - {self.ha_id}"
            )

    async def async_reconnect(
        self,
        skip_if_connected: bool = True,  # noqa: FBT001, FBT002
    ) -> None:
        """Reconnect the stream unless it is already connected."""
        if skip_if_connected and self.connected:
            _LOGGER.debug("Already connected to %s; skipping reconnection", self.ha_id)
            return
        await self.async_connect()

    async def async_disconnect(self) -> None:
        """Close the stream and cancel every pending timer.

        Safe to call when not connected.
        """
        self._shutdown = True
        await _async_cancel(self._reconnect_task)
        self._reconnect_task = None
        await self._async_close_stream()
        if self._status is not StreamStatus.DISCONNECTED:
            _LOGGER.info("Disconnected the event stream of appliance %s", self.ha_id)
        self._set_status(StreamStatus.DISCONNECTED)

    def handle_control_frame(self, text: str) -> None:
        """Handle a START/STOP status message of the stream."""
        frame_type = text.split(":", 1)[0].strip().upper()
        if frame_type == CONTROL_START:
            self._set_connected()
        elif frame_type == CONTROL_STOP:
            _LOGGER.debug(
                "Event stream of %s stopped, waiting %s seconds before disconnecting",
                self.ha_id,
                self._grace_period,
            )
            self._schedule_grace_disconnect()
        else:
            _LOGGER.error("Received unhandled event stream status message: %s", text)
            self._schedule_grace_disconnect()

    async def _async_close_stream(self) -> None:
        self._cancel_grace()
        await _async_cancel(self._listen_task)
        self._listen_task = None
        self._event_type = None
        self._event_id = None

    async def _async_listen(self) -> None:
        try:
            token = await self._token_store.async_get_valid_token()
            headers = {
                "Authorization": f"Bearer {token}",
                "Accept": "text/event-stream",
                "Accept-Language": self._language,
            }
            async with self._session.stream(
                "GET",
                self.url,
                headers=headers,
                timeout=httpx.Timeout(STREAM_CONNECT_TIMEOUT, read=None),
            ) as response:
                if is_http_error(response.status_code):
                    if is_auth_error(response.status_code):
                        auth_error = "Event stream rejected the access token"
                        raise HomeConnectAuthError(auth_error, response.status_code)
                    client_error = (
                        f"Event stream request failed: {response.status_code}"
                    )
                    raise HomeConnectApiClientError(client_error, response.status_code)

                self.handle_control_frame(CONTROL_START)
                async for line in response.aiter_lines():
                    self._handle_line(line)

            _LOGGER.info("Event stream of %s closed by the server", self.ha_id)
            self.handle_control_frame(CONTROL_STOP)
        except HomeConnectAuthError as err:
            _LOGGER.error(
                "Authentication failed for the event stream of %s: %s", self.ha_id, err
            )
            self._set_disconnected()
        except (httpx.HTTPError, HomeConnectApiClientError) as err:
            _LOGGER.warning("Event stream of %s failed: %s", self.ha_id, err)
            self._set_disconnected()
        except Exception:
            _LOGGER.exception("Unexpected error in the event stream of %s", self.ha_id)
            self._set_disconnected()

    def _handle_line(self, line: str) -> None:
        if not line:
            self._event_type = None
            self._event_id = None
            return
        if line.startswith(":"):
            _LOGGER.debug("Event stream comment from %s: %s", self.ha_id, line)
            return

        field, _, value = line.partition(":")
        value = value.strip()
        if field == "event":
            self._event_type = value
            if value == EVENT_KEEP_ALIVE:
                _LOGGER.debug("Keep-alive received from %s", self.ha_id)
        elif field == "id":
            self._event_id = value or None
        elif field == "data":
            self._handle_data(line)
        elif field.strip().upper() in (CONTROL_START, CONTROL_STOP):
            self.handle_control_frame(line)
        else:
            _LOGGER.debug("Ignoring event stream line from %s: %s", self.ha_id, line)

    def _handle_data(self, line: str) -> None:
        ha_id = self._event_id or self.ha_id
        if self._event_type in (EVENT_CONNECTED, EVENT_DISCONNECTED):
            connected = self._event_type == EVENT_CONNECTED
            self._router.route(
                ha_id,
                NormalizedEvent(
                    ha_id=ha_id,
                    key=APPLIANCE_CONNECTED_KEY,
                    raw_value=connected,
                    display_value=str(connected),
                ),
            )
            return
        if self._event_type in (EVENT_PAIRED, EVENT_DEPAIRED):
            _LOGGER.info("Appliance %s reported %s", ha_id, self._event_type)
            return

        _LOGGER.debug("Received event stream message from %s: %s", ha_id, line)
        for event in parse_event_chunk(line, ha_id):
            self._router.route(event.ha_id, event)

    def _set_connected(self) -> None:
        self._cancel_grace()
        self._retry_interval = self._retry_base
        self._set_status(StreamStatus.CONNECTED)

    def _set_disconnected(self) -> None:
        self._cancel_grace()
        self._set_status(StreamStatus.DISCONNECTED)
        if self._shutdown:
            return
        if self._reconnect_task is not None and not self._reconnect_task.done():
            _LOGGER.debug("Reconnection of %s already scheduled", self.ha_id)
            return

        delay = self._retry_interval
        self._retry_interval = min(self._retry_interval * 2, self._retry_max)
        _LOGGER.debug(
            "Reconnecting the event stream of %s in %s seconds", self.ha_id, delay
        )
        self._schedule_reconnect(delay)

    def _schedule_reconnect(self, delay: float) -> None:
        async def reconnect() -> None:
            await asyncio.sleep(delay)
            if not self._shutdown:
                await self.async_reconnect()

        self._reconnect_task = asyncio.create_task(reconnect())

    def _schedule_grace_disconnect(self) -> None:
        self._cancel_grace()

        async def confirm_disconnect() -> None:
            await asyncio.sleep(self._grace_period)
            self._grace_task = None
            _LOGGER.info(
                "No START within %s seconds, event stream of %s is disconnected",
                self._grace_period,
                self.ha_id,
            )
            self._set_disconnected()

        self._grace_task = asyncio.create_task(confirm_disconnect())

    def _cancel_grace(self) -> None:
        task = self._grace_task
        self._grace_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def _set_status(self, status: StreamStatus) -> None:
        if status is self._status:
            return
        self._status = status
        _LOGGER.debug("Event stream of %s is %s", self.ha_id, status)
        if self._on_status_change is None:
            return
        try:
            self._on_status_change(status)
        except Exception:
            _LOGGER.exception("Error in stream status callback")


async def _async_cancel(task: asyncio.Task[None] | None) -> None:
    """Cancel a task and wait for it, unless it is the running task."""
    if task is None or task.done() or task is asyncio.current_task():
        return
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task
