"""Tests for the Home Connect coordinator."""

from unittest.mock import AsyncMock, Mock

import httpx
import pytest
from homeassistant.exceptions import ConfigEntryAuthFailed
from homeassistant.helpers.update_coordinator import UpdateFailed

from custom_components.home_connect_sse.api import (
    HomeConnectApiClient,
    HomeConnectApiClientError,
    HomeConnectAuthError,
)
from custom_components.home_connect_sse.coordinator import HomeConnectCoordinator
from custom_components.home_connect_sse.models import (
    Appliance,
    NormalizedEvent,
    StreamStatus,
)

from .conftest import DISHWASHER_HA_ID, WASHER_HA_ID

STATUS_ITEMS = [
    {
        "key": "BSH.Common.Status.OperationState",
        "value": "BSH.Common.EnumType.OperationState.Run",
    },
    {
        "key": "BSH.Common.Status.DoorState",
        "value": "BSH.Common.EnumType.DoorState.Closed",
    },
]
SETTINGS_ITEMS = [
    {
        "key": "BSH.Common.Setting.PowerState",
        "value": "BSH.Common.EnumType.PowerState.On",
    },
]
ACTIVE_PROGRAM = {
    "key": "Dishcare.Dishwasher.Program.Eco50",
    "name": "Eco 50°",
    "options": [
        {"key": "BSH.Common.Option.ProgramProgress", "value": 45},
        {"key": "BSH.Common.Option.RemainingProgramTime", "value": 5430},
    ],
}


@pytest.fixture
def mock_hass() -> Mock:
    """Create a mock Home Assistant instance."""
    return Mock()


@pytest.fixture
def mock_config_entry() -> Mock:
    """Create a mock config entry for testing."""
    entry = Mock()
    entry.entry_id = "test_entry_id"
    entry.options = {}
    return entry


@pytest.fixture
def mock_client(dishwasher: Appliance, washer: Appliance) -> Mock:
    """Create a mock REST client."""
    client = Mock(spec=HomeConnectApiClient)
    client.async_get_appliances = AsyncMock(return_value=[dishwasher, washer])
    client.async_get_status = AsyncMock(return_value=STATUS_ITEMS)
    client.async_get_settings = AsyncMock(return_value=SETTINGS_ITEMS)
    client.async_get_active_program = AsyncMock(return_value=ACTIVE_PROGRAM)
    return client


@pytest.fixture
def coordinator(
    mock_hass: Mock,
    mock_config_entry: Mock,
    mock_token_store: Mock,
    mock_client: Mock,
) -> HomeConnectCoordinator:
    """Create a coordinator instance."""
    return HomeConnectCoordinator(
        mock_hass,
        mock_config_entry,
        Mock(spec=httpx.AsyncClient),
        mock_token_store,
        mock_client,
        "en-US",
    )


def stub_streams(coordinator: HomeConnectCoordinator) -> dict[str, Mock]:
    """Replace the coordinator streams with mocks."""
    streams = {}
    for ha_id in list(coordinator.streams):
        stream = Mock()
        stream.async_connect = AsyncMock()
        stream.async_disconnect = AsyncMock()
        coordinator.streams[ha_id] = stream
        streams[ha_id] = stream
    return streams


class TestSetupAppliances:
    """Tests for async_setup_appliances."""

    @pytest.mark.asyncio
    async def test_tracks_every_appliance_without_selection(
        self, coordinator: HomeConnectCoordinator
    ) -> None:
        """Test that all discovered appliances are tracked by default."""
        await coordinator.async_setup_appliances(None)

        assert set(coordinator.states) == {DISHWASHER_HA_ID, WASHER_HA_ID}
        assert set(coordinator.streams) == {DISHWASHER_HA_ID, WASHER_HA_ID}
        assert DISHWASHER_HA_ID in coordinator.router
        assert coordinator.data[WASHER_HA_ID]["eventStreamStatus"] == "disconnected"

    @pytest.mark.asyncio
    async def test_tracks_only_selected_appliances(
        self, coordinator: HomeConnectCoordinator
    ) -> None:
        """Test that unselected appliances are discovered but not tracked."""
        await coordinator.async_setup_appliances([DISHWASHER_HA_ID])

        assert list(coordinator.states) == [DISHWASHER_HA_ID]
        assert WASHER_HA_ID not in coordinator.router
        assert set(coordinator.discovered) == {DISHWASHER_HA_ID, WASHER_HA_ID}
        assert [a.ha_id for a in coordinator.appliances] == [DISHWASHER_HA_ID]

    @pytest.mark.asyncio
    async def test_discovery_errors_propagate(
        self, coordinator: HomeConnectCoordinator, mock_client: Mock
    ) -> None:
        """Test that discovery failures reach the caller."""
        mock_client.async_get_appliances.side_effect = HomeConnectAuthError("401")
        with pytest.raises(HomeConnectAuthError):
            await coordinator.async_setup_appliances(None)

    @pytest.mark.asyncio
    async def test_start_streams_connects_each(
        self, coordinator: HomeConnectCoordinator
    ) -> None:
        """Test that every tracked stream is connected."""
        await coordinator.async_setup_appliances(None)
        streams = stub_streams(coordinator)

        await coordinator.async_start_streams()

        for stream in streams.values():
            stream.async_connect.assert_awaited_once()


class TestUpdateData:
    """Tests for _async_update_data."""

    @pytest.mark.asyncio
    async def test_poll_applies_status_settings_and_program(
        self, coordinator: HomeConnectCoordinator
    ) -> None:
        """Test that polled items go through the normalizer."""
        await coordinator.async_setup_appliances([DISHWASHER_HA_ID])

        data = await coordinator._async_update_data()

        attributes = data[DISHWASHER_HA_ID]
        assert attributes["operationState"] == "Run"
        assert attributes["doorState"] == "Closed"
        assert attributes["contact"] == "closed"
        assert attributes["powerState"] == "On"
        assert attributes["activeProgram"] == "Eco 50°"
        assert attributes["programProgress"] == 45
        assert attributes["remainingProgramTime"] == "01:30"

    @pytest.mark.asyncio
    async def test_no_active_program_is_fine(
        self, coordinator: HomeConnectCoordinator, mock_client: Mock
    ) -> None:
        """Test that a missing active program leaves the other attributes."""
        mock_client.async_get_active_program.return_value = None
        await coordinator.async_setup_appliances([DISHWASHER_HA_ID])

        data = await coordinator._async_update_data()

        assert "activeProgram" not in data[DISHWASHER_HA_ID]
        assert data[DISHWASHER_HA_ID]["operationState"] == "Run"

    @pytest.mark.asyncio
    async def test_auth_error_raises_config_entry_auth_failed(
        self, coordinator: HomeConnectCoordinator, mock_client: Mock
    ) -> None:
        """Test that authentication errors start re-authentication."""
        await coordinator.async_setup_appliances(None)
        mock_client.async_get_status.side_effect = HomeConnectAuthError("expired")

        with pytest.raises(ConfigEntryAuthFailed):
            await coordinator._async_update_data()

    @pytest.mark.asyncio
    async def test_api_error_raises_update_failed(
        self, coordinator: HomeConnectCoordinator, mock_client: Mock
    ) -> None:
        """Test that API errors fail the update."""
        await coordinator.async_setup_appliances(None)
        mock_client.async_get_status.side_effect = HomeConnectApiClientError(
            "Request failed: 500", 500
        )

        with pytest.raises(UpdateFailed):
            await coordinator._async_update_data()

    @pytest.mark.asyncio
    async def test_unreachable_token_endpoint_raises_update_failed(
        self, coordinator: HomeConnectCoordinator, mock_client: Mock
    ) -> None:
        """Test that a network failure while refreshing does not start reauth."""
        await coordinator.async_setup_appliances(None)
        mock_client.async_get_status.side_effect = HomeConnectApiClientError(
            "Token request failed: Connection failed"
        )

        with pytest.raises(UpdateFailed):
            await coordinator._async_update_data()

    @pytest.mark.asyncio
    async def test_offline_appliance_is_skipped(
        self, coordinator: HomeConnectCoordinator, mock_client: Mock
    ) -> None:
        """Test that a 409 for one appliance does not fail the update."""
        await coordinator.async_setup_appliances(None)
        mock_client.async_get_status.side_effect = [
            HomeConnectApiClientError("Request failed: 409", 409),
            STATUS_ITEMS,
        ]

        data = await coordinator._async_update_data()

        assert "operationState" not in data[DISHWASHER_HA_ID]
        assert data[WASHER_HA_ID]["operationState"] == "Run"


class TestPushUpdates:
    """Tests for state pushed by the event streams."""

    @pytest.mark.asyncio
    async def test_routed_event_updates_data(
        self, coordinator: HomeConnectCoordinator
    ) -> None:
        """Test that a routed event refreshes the coordinator data."""
        await coordinator.async_setup_appliances(None)

        coordinator.router.route(
            DISHWASHER_HA_ID,
            NormalizedEvent(
                DISHWASHER_HA_ID,
                "BSH.Common.Option.ProgramProgress",
                80,
                "80",
            ),
        )

        assert coordinator.data[DISHWASHER_HA_ID]["programProgress"] == 80

    @pytest.mark.asyncio
    async def test_stream_status_is_recorded(
        self, coordinator: HomeConnectCoordinator
    ) -> None:
        """Test that stream status changes become an attribute."""
        await coordinator.async_setup_appliances(None)

        coordinator._handle_stream_status(WASHER_HA_ID, StreamStatus.CONNECTED)
        coordinator._handle_stream_status("UNKNOWN", StreamStatus.CONNECTED)

        assert coordinator.data[WASHER_HA_ID]["eventStreamStatus"] == "connected"


class TestRemoval:
    """Tests for appliance removal and shutdown."""

    @pytest.mark.asyncio
    async def test_remove_appliance_disconnects_and_unregisters(
        self, coordinator: HomeConnectCoordinator
    ) -> None:
        """Test that a removed appliance stops streaming and receiving events."""
        await coordinator.async_setup_appliances(None)
        streams = stub_streams(coordinator)

        await coordinator.async_remove_appliance(WASHER_HA_ID)

        streams[WASHER_HA_ID].async_disconnect.assert_awaited_once()
        assert WASHER_HA_ID not in coordinator.router
        assert WASHER_HA_ID not in coordinator.states
        assert WASHER_HA_ID not in coordinator.data
        streams[DISHWASHER_HA_ID].async_disconnect.assert_not_called()

    @pytest.mark.asyncio
    async def test_shutdown_streams_disconnects_all(
        self, coordinator: HomeConnectCoordinator
    ) -> None:
        """Test that every stream is disconnected on shutdown."""
        await coordinator.async_setup_appliances(None)
        streams = stub_streams(coordinator)

        await coordinator.async_shutdown_streams()

        for stream in streams.values():
            stream.async_disconnect.assert_awaited_once()
