"""Tests for the Home Connect API client."""

from unittest.mock import Mock

import httpx
import pytest
from pytest_httpx import HTTPXMock

from custom_components.home_connect_sse import api
from custom_components.home_connect_sse.api import (
    HomeConnectApiClient,
    HomeConnectApiClientError,
    HomeConnectAuthError,
)
from custom_components.home_connect_sse.const import (
    BASE_URL,
    CONTENT_TYPE_BSH,
    POWER_STATE_KEY,
    POWER_STATE_OFF,
    POWER_STATE_ON,
)
from custom_components.home_connect_sse.models import ApplianceType

from .conftest import ACCESS_TOKEN, DISHWASHER_HA_ID, WASHER_HA_ID

APPLIANCES_URL = f"{BASE_URL}/api/homeappliances"
DISHWASHER_URL = f"{APPLIANCES_URL}/{DISHWASHER_HA_ID}"
EXPECTED_APPLIANCE_COUNT = 2


class TestHomeConnectApiClientError:
    """Tests for the API exception hierarchy."""

    def test_client_error_keeps_status(self) -> None:
        """Test that HomeConnectApiClientError carries the HTTP status."""
        error = HomeConnectApiClientError("Test error", 503)
        assert isinstance(error, Exception)
        assert error.status == 503

    def test_auth_error_is_client_error(self) -> None:
        """Test that HomeConnectAuthError is a HomeConnectApiClientError."""
        error = HomeConnectAuthError("Auth error")
        assert isinstance(error, HomeConnectApiClientError)
        assert error.status is None


class TestStatusHelpers:
    """Tests for is_http_error and is_auth_error."""

    @pytest.mark.parametrize(
        ("status", "expected"), [(200, False), (204, False), (400, True), (500, True)]
    )
    def test_is_http_error(self, status: int, expected: bool) -> None:
        """Test that statuses from 400 upward are errors."""
        assert api.is_http_error(status) is expected

    def test_is_auth_error(self) -> None:
        """Test that only 401 is an authentication error."""
        assert api.is_auth_error(401)
        assert not api.is_auth_error(403)


class TestValidateResponse:
    """Tests for validate_response."""

    def test_returns_json_body(self) -> None:
        """Test that a JSON object body is returned."""
        response = httpx.Response(200, json={"data": {"key": "value"}})
        assert api.validate_response(response) == {"data": {"key": "value"}}

    def test_empty_body_returns_empty_dict(self) -> None:
        """Test that 204 responses yield an empty dict."""
        assert api.validate_response(httpx.Response(204)) == {}

    def test_unauthorized_raises_auth_error(self) -> None:
        """Test that 401 raises HomeConnectAuthError."""
        with pytest.raises(HomeConnectAuthError) as exc_info:
            api.validate_response(httpx.Response(401, json={}))
        assert exc_info.value.status == 401

    def test_server_error_raises_client_error(self) -> None:
        """Test that other error statuses raise HomeConnectApiClientError."""
        with pytest.raises(HomeConnectApiClientError, match="500"):
            api.validate_response(httpx.Response(500, json={}))

    def test_invalid_json_raises(self) -> None:
        """Test that a non-JSON body raises HomeConnectApiClientError."""
        with pytest.raises(HomeConnectApiClientError, match="Invalid JSON"):
            api.validate_response(httpx.Response(200, text="not json"))

    def test_non_object_json_raises(self) -> None:
        """Test that a JSON array body is rejected."""
        with pytest.raises(HomeConnectApiClientError, match="Unexpected"):
            api.validate_response(httpx.Response(200, json=[1, 2]))


class TestExtractAppliances:
    """Tests for extract_appliances."""

    def test_extracts_supported_appliances(
        self, sample_appliances_response: dict
    ) -> None:
        """Test that supported appliances are returned and others skipped."""
        appliances = api.extract_appliances(sample_appliances_response)
        assert len(appliances) == EXPECTED_APPLIANCE_COUNT
        assert appliances[0].ha_id == DISHWASHER_HA_ID
        assert appliances[0].type is ApplianceType.DISHWASHER
        assert appliances[0].brand == "SIEMENS"
        assert appliances[1].ha_id == WASHER_HA_ID
        assert appliances[1].connected is False

    def test_freezer_alias_resolves_to_fridge_freezer(self) -> None:
        """Test that vendor aliases map onto the FridgeFreezer type."""
        appliances = api.extract_appliances(
            {"data": {"homeappliances": [{"haId": "F1", "type": "Freezer"}]}}
        )
        assert appliances[0].type is ApplianceType.FRIDGE_FREEZER
        assert appliances[0].name == "F1"

    def test_missing_list_returns_empty(self) -> None:
        """Test that a response without appliances yields an empty list."""
        assert api.extract_appliances({}) == []


class TestHomeConnectApiClient:
    """Tests for HomeConnectApiClient."""

    @pytest.mark.asyncio
    async def test_get_appliances_sends_auth_headers(
        self,
        httpx_mock: HTTPXMock,
        mock_token_store: Mock,
        sample_appliances_response: dict,
    ) -> None:
        """Test that appliance discovery sends bearer, language and accept."""
        httpx_mock.add_response(
            url=APPLIANCES_URL, method="GET", json=sample_appliances_response
        )
        async with httpx.AsyncClient() as session:
            client = HomeConnectApiClient(session, mock_token_store, "de-DE")
            appliances = await client.async_get_appliances()

        assert len(appliances) == EXPECTED_APPLIANCE_COUNT
        request = httpx_mock.get_request()
        assert request.headers["Authorization"] == f"Bearer {ACCESS_TOKEN}"
        assert request.headers["Accept-Language"] == "de-DE"
        assert request.headers["accept"] == CONTENT_TYPE_BSH
        mock_token_store.async_get_valid_token.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_get_status_returns_items(
        self, httpx_mock: HTTPXMock, mock_token_store: Mock
    ) -> None:
        """Test that the status list is unwrapped."""
        status = [{"key": "BSH.Common.Status.DoorState", "value": "x.Closed"}]
        httpx_mock.add_response(
            url=f"{DISHWASHER_URL}/status",
            method="GET",
            json={"data": {"status": status}},
        )
        async with httpx.AsyncClient() as session:
            client = HomeConnectApiClient(session, mock_token_store)
            assert await client.async_get_status(DISHWASHER_HA_ID) == status

    @pytest.mark.asyncio
    async def test_set_power_state_wraps_body(
        self, httpx_mock: HTTPXMock, mock_token_store: Mock
    ) -> None:
        """Test that settings are sent as a data-wrapped body."""
        httpx_mock.add_response(
            url=f"{DISHWASHER_URL}/settings/{POWER_STATE_KEY}",
            method="PUT",
            status_code=204,
        )
        httpx_mock.add_response(
            url=f"{DISHWASHER_URL}/settings/{POWER_STATE_KEY}",
            method="PUT",
            status_code=204,
        )
        async with httpx.AsyncClient() as session:
            client = HomeConnectApiClient(session, mock_token_store)
            await client.async_set_power_state(DISHWASHER_HA_ID, True)
            await client.async_set_power_state(DISHWASHER_HA_ID, False)

        on_request, off_request = httpx_mock.get_requests()
        assert on_request.headers["content-type"] == CONTENT_TYPE_BSH
        assert b'"data"' in on_request.content
        assert POWER_STATE_ON.encode() in on_request.content
        assert POWER_STATE_OFF.encode() in off_request.content

    @pytest.mark.asyncio
    async def test_start_program_with_options(
        self, httpx_mock: HTTPXMock, mock_token_store: Mock
    ) -> None:
        """Test that start_program puts the program and its options."""
        httpx_mock.add_response(
            url=f"{DISHWASHER_URL}/programs/active", method="PUT", status_code=204
        )
        options = [{"key": "BSH.Common.Option.StartInRelative", "value": 1800}]
        async with httpx.AsyncClient() as session:
            client = HomeConnectApiClient(session, mock_token_store)
            await client.async_start_program(
                DISHWASHER_HA_ID, "Dishcare.Dishwasher.Program.Eco50", options
            )

        content = httpx_mock.get_request().content
        assert b"Dishcare.Dishwasher.Program.Eco50" in content
        assert b"StartInRelative" in content

    @pytest.mark.asyncio
    async def test_stop_program_deletes_active(
        self, httpx_mock: HTTPXMock, mock_token_store: Mock
    ) -> None:
        """Test that stop_program deletes the active program."""
        httpx_mock.add_response(
            url=f"{DISHWASHER_URL}/programs/active", method="DELETE", status_code=204
        )
        async with httpx.AsyncClient() as session:
            client = HomeConnectApiClient(session, mock_token_store)
            await client.async_stop_program(DISHWASHER_HA_ID)

        assert httpx_mock.get_request().method == "DELETE"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [404, 409])
    async def test_no_active_program_returns_none(
        self, httpx_mock: HTTPXMock, mock_token_store: Mock, status_code: int
    ) -> None:
        """Test that 404 and 409 mean no program is active."""
        httpx_mock.add_response(
            url=f"{DISHWASHER_URL}/programs/active",
            method="GET",
            json={"error": {"key": "SDK.Error.NoProgramActive"}},
            status_code=status_code,
        )
        async with httpx.AsyncClient() as session:
            client = HomeConnectApiClient(session, mock_token_store)
            assert await client.async_get_active_program(DISHWASHER_HA_ID) is None

    @pytest.mark.asyncio
    async def test_active_program_server_error_raises(
        self, httpx_mock: HTTPXMock, mock_token_store: Mock
    ) -> None:
        """Test that other errors on the active program propagate."""
        httpx_mock.add_response(
            url=f"{DISHWASHER_URL}/programs/active", method="GET", status_code=500
        )
        async with httpx.AsyncClient() as session:
            client = HomeConnectApiClient(session, mock_token_store)
            with pytest.raises(HomeConnectApiClientError):
                await client.async_get_active_program(DISHWASHER_HA_ID)

    @pytest.mark.asyncio
    async def test_unauthorized_raises_auth_error(
        self, httpx_mock: HTTPXMock, mock_token_store: Mock
    ) -> None:
        """Test that 401 surfaces as HomeConnectAuthError."""
        httpx_mock.add_response(url=APPLIANCES_URL, method="GET", status_code=401)
        async with httpx.AsyncClient() as session:
            client = HomeConnectApiClient(session, mock_token_store)
            with pytest.raises(HomeConnectAuthError):
                await client.async_get_appliances()

    @pytest.mark.asyncio
    async def test_transport_error_raises_client_error(
        self, httpx_mock: HTTPXMock, mock_token_store: Mock
    ) -> None:
        """Test that httpx errors are wrapped in HomeConnectApiClientError."""
        httpx_mock.add_exception(httpx.ConnectError("Connection failed"))
        async with httpx.AsyncClient() as session:
            client = HomeConnectApiClient(session, mock_token_store)
            with pytest.raises(HomeConnectApiClientError, match="Connection error"):
                await client.async_get_appliances()

    def test_events_url(self, mock_token_store: Mock) -> None:
        """Test the per-appliance and global event stream URLs."""
        client = HomeConnectApiClient(Mock(spec=httpx.AsyncClient), mock_token_store)
        assert client.events_url() == f"{APPLIANCES_URL}/events"
        assert client.events_url("X") == f"{APPLIANCES_URL}/X/events"
