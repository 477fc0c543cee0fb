"""API client for Home Connect appliances.

This module provides the REST facade over the Home Connect API, including
appliance discovery, status and settings access, and program control.
Every call pulls a live access token from the token store.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx
from homeassistant.helpers.httpx_client import create_async_httpx_client
from httpx_retries import Retry, RetryTransport

from .const import (
    BASE_URL,
    CONTENT_TYPE_BSH,
    DEFAULT_LANGUAGE,
    ENDPOINT_APPLIANCES,
    POWER_STATE_KEY,
    POWER_STATE_OFF,
    POWER_STATE_ON,
    REQUEST_TIMEOUT,
)
from .models import Appliance, resolve_appliance_type

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

    from .auth import TokenStore

_LOGGER = logging.getLogger(__name__)

# HTTP status codes
HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401
HTTP_NOT_FOUND = 404
HTTP_CONFLICT = 409
HTTP_INTERNAL_SERVER_ERROR = 500


class HomeConnectApiClientError(Exception):
    """Base exception for Home Connect API client errors."""

    def __init__(self, message: str, status: int | None = None) -> None:
        """Initialize the error with an optional HTTP status code."""
        super().__init__(message)
        self.status = status


class HomeConnectAuthError(HomeConnectApiClientError):
    """Exception raised for authentication errors."""


def is_http_error(status: int) -> bool:
    """Check if HTTP status code indicates an error."""
    return status >= HTTP_BAD_REQUEST


def is_auth_error(status: int) -> bool:
    """Check if HTTP status code indicates authentication error."""
    return status == HTTP_UNAUTHORIZED


def is_client_error(status: int) -> bool:
    """Check if HTTP status code indicates a rejected request."""
    return HTTP_BAD_REQUEST <= status < HTTP_INTERNAL_SERVER_ERROR


def validate_response(response: httpx.Response) -> dict[str, Any]:
    """Validate HTTP response and return parsed JSON data.

    Args:
        response: HTTP response object to validate.

    Returns:
        Parsed JSON data from response, or an empty dict for empty bodies.

    Raises:
        HomeConnectAuthError: If authentication error is detected.
        HomeConnectApiClientError: If API error is detected.

    """
    if is_http_error(response.status_code):
        if is_auth_error(response.status_code):
            auth_error = "Authentication error"
            raise HomeConnectAuthError(auth_error, response.status_code)
        client_error = f"Request failed: {response.status_code}"
        raise HomeConnectApiClientError(client_error, response.status_code)

    if not response.content:
        return {}
    try:
        data = response.json()
    except ValueError as err:
        error_msg = f"Invalid JSON response: {err}"
        raise HomeConnectApiClientError(error_msg) from err
    if not isinstance(data, dict):
        error_msg = "Unexpected response payload"
        raise HomeConnectApiClientError(error_msg)
    return data


def extract_appliances(data: dict[str, Any]) -> list[Appliance]:
    """Extract supported appliances from the appliance list response.

    Appliances with an unsupported type are logged and skipped.
    """
    appliances: list[Appliance] = []
    for item in data.get("data", {}).get("homeappliances", []):
        appliance_type = resolve_appliance_type(item.get("type"))
        if appliance_type is None:
            _LOGGER.error(
                "Appliance %s has unsupported type: %s",
                item.get("haId"),
                item.get("type"),
            )
            continue
        appliances.append(
            Appliance(
                ha_id=item["haId"],
                type=appliance_type,
                name=item.get("name") or item["haId"],
                brand=item.get("brand"),
                vib=item.get("vib"),
                connected=bool(item.get("connected", False)),
            )
        )
    return appliances


def create_session_client(hass: HomeAssistant) -> httpx.AsyncClient:
    """Create HTTP client with retry logic for the Home Connect API.

    Args:
        hass: Home Assistant instance.

    Returns:
        Configured httpx AsyncClient with retry transport.

    """
    base_client = create_async_httpx_client(hass, timeout=REQUEST_TIMEOUT)
    retry = Retry(total=3, backoff_factor=0.5)
    base_client._transport = RetryTransport(  # noqa: SLF001
        transport=base_client._transport,  # noqa: SLF001
        retry=retry,
    )
    return base_client


class HomeConnectApiClient:
    """REST facade for the Home Connect appliance API."""

    def __init__(
        self,
        session: httpx.AsyncClient,
        token_store: TokenStore,
        language: str = DEFAULT_LANGUAGE,
    ) -> None:
        """Initialize the API client.

        Args:
            session: HTTP client session.
            token_store: Source of valid access tokens.
            language: Value for the Accept-Language header.

        """
        self._session = session
        self._token_store = token_store
        self._language = language

    async def async_auth_headers(self) -> dict[str, str]:
        """Build request headers with a currently valid bearer token."""
        token = await self._token_store.async_get_valid_token()
        return {
            "Authorization": f"Bearer {token}",
            "Accept-Language": self._language,
            "accept": CONTENT_TYPE_BSH,
        }

    def events_url(self, ha_id: str | None = None) -> str:
        """Return the event stream URL for one appliance or for all of them."""
        if ha_id is None:
            return f"{BASE_URL}{ENDPOINT_APPLIANCES}/events"
        return f"{BASE_URL}{ENDPOINT_APPLIANCES}/{ha_id}/events"

    async def _async_request(
        self,
        method: str,
        path: str,
        data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = f"{BASE_URL}{ENDPOINT_APPLIANCES}{path}"
        headers = await self.async_auth_headers()
        kwargs: dict[str, Any] = {"headers": headers}
        if data is not None:
            headers["content-type"] = CONTENT_TYPE_BSH
            kwargs["json"] = {"data": data}

        _LOGGER.debug("%s request to Home Connect: %s", method, url)
        try:
            response = await self._session.request(method, url, **kwargs)
        except httpx.HTTPError as err:
            error_msg = f"Connection error: {err}"
            raise HomeConnectApiClientError(error_msg) from err
        return validate_response(response)

    async def async_get_appliances(self) -> list[Appliance]:
        """Fetch all appliances paired with the account."""
        data = await self._async_request("GET", "")
        appliances = extract_appliances(data)
        _LOGGER.debug("Retrieved %d appliances from Home Connect", len(appliances))
        return appliances

    async def async_get_appliance(self, ha_id: str) -> dict[str, Any]:
        """Fetch a single appliance description."""
        data = await self._async_request("GET", f"/{ha_id}")
        return data.get("data", {})

    async def async_get_status(self, ha_id: str) -> list[dict[str, Any]]:
        """Fetch the current status items of an appliance."""
        data = await self._async_request("GET", f"/{ha_id}/status")
        return data.get("data", {}).get("status", [])

    async def async_get_settings(self, ha_id: str) -> list[dict[str, Any]]:
        """Fetch the current setting items of an appliance."""
        data = await self._async_request("GET", f"/{ha_id}/settings")
        return data.get("data", {}).get("settings", [])

    async def async_get_setting(self, ha_id: str, key: str) -> dict[str, Any]:
        """Fetch a single setting including its constraints."""
        data = await self._async_request("GET", f"/{ha_id}/settings/{key}")
        return data.get("data", {})

    async def async_set_setting(self, ha_id: str, key: str, value: Any) -> None:
        """Change a setting of an appliance."""
        _LOGGER.info("Setting %s=%s on appliance %s", key, value, ha_id)
        await self._async_request(
            "PUT", f"/{ha_id}/settings/{key}", {"key": key, "value": value}
        )

    async def async_set_power_state(self, ha_id: str, on: bool) -> None:  # noqa: FBT001
        """Switch an appliance on or off."""
        await self.async_set_setting(
            ha_id, POWER_STATE_KEY, POWER_STATE_ON if on else POWER_STATE_OFF
        )

    async def async_get_programs(self, ha_id: str) -> list[dict[str, Any]]:
        """Fetch all programs of an appliance."""
        data = await self._async_request("GET", f"/{ha_id}/programs")
        return data.get("data", {}).get("programs", [])

    async def async_get_available_programs(self, ha_id: str) -> list[dict[str, Any]]:
        """Fetch the programs currently available on an appliance."""
        data = await self._async_request("GET", f"/{ha_id}/programs/available")
        return data.get("data", {}).get("programs", [])

    async def async_get_available_program(
        self, ha_id: str, program_key: str
    ) -> dict[str, Any]:
        """Fetch one available program with its option constraints."""
        data = await self._async_request(
            "GET", f"/{ha_id}/programs/available/{program_key}"
        )
        return data.get("data", {})

    async def async_get_active_program(self, ha_id: str) -> dict[str, Any] | None:
        """Fetch the running program, or None if nothing is running."""
        try:
            data = await self._async_request("GET", f"/{ha_id}/programs/active")
        except HomeConnectApiClientError as err:
            # The API answers 404/409 when no program is active
            if err.status in (HTTP_NOT_FOUND, HTTP_CONFLICT):
                _LOGGER.debug("No active program on appliance %s", ha_id)
                return None
            raise
        return data.get("data")

    async def async_get_active_program_options(
        self, ha_id: str
    ) -> list[dict[str, Any]]:
        """Fetch the options of the running program."""
        data = await self._async_request("GET", f"/{ha_id}/programs/active/options")
        return data.get("data", {}).get("options", [])

    async def async_start_program(
        self,
        ha_id: str,
        program_key: str,
        options: list[dict[str, Any]] | None = None,
    ) -> None:
        """Start a program on an appliance."""
        payload: dict[str, Any] = {"key": program_key}
        if options:
            payload["options"] = options
        _LOGGER.info("Starting program %s on appliance %s", program_key, ha_id)
        await self._async_request("PUT", f"/{ha_id}/programs/active", payload)

    async def async_stop_program(self, ha_id: str) -> None:
        """Stop the running program of an appliance."""
        _LOGGER.info("Stopping active program on appliance %s", ha_id)
        await self._async_request("DELETE", f"/{ha_id}/programs/active")

    async def async_get_selected_program(self, ha_id: str) -> dict[str, Any] | None:
        """Fetch the program currently selected on the appliance."""
        data = await self._async_request("GET", f"/{ha_id}/programs/selected")
        return data.get("data")

    async def async_set_selected_program(
        self,
        ha_id: str,
        program_key: str,
        options: list[dict[str, Any]] | None = None,
    ) -> None:
        """Select a program without starting it."""
        payload: dict[str, Any] = {"key": program_key}
        if options:
            payload["options"] = options
        await self._async_request("PUT", f"/{ha_id}/programs/selected", payload)

    async def async_set_selected_program_option(
        self, ha_id: str, option_key: str, value: Any
    ) -> None:
        """Change one option of the selected program."""
        await self._async_request(
            "PUT",
            f"/{ha_id}/programs/selected/options/{option_key}",
            {"key": option_key, "value": value},
        )
