"""Pytest configuration and fixtures for Home Connect SSE tests."""

import json
from unittest.mock import AsyncMock, Mock

import pytest

from custom_components.home_connect_sse.auth import TokenStore, now_ms
from custom_components.home_connect_sse.models import (
    Appliance,
    ApplianceType,
    OAuthToken,
)

CLIENT_ID = "test_client_id"
CLIENT_SECRET = "test_client_secret"  # noqa: S105
ACCESS_TOKEN = "test_access_token"  # noqa: S105
REFRESH_TOKEN = "test_refresh_token"  # noqa: S105
DISHWASHER_HA_ID = "SIEMENS-SN658X06TE-68A40E000000"
WASHER_HA_ID = "BOSCH-WAV28KH1BY-68A40E000001"


def data_chunk(*items: dict) -> str:
    """Build a ``data:`` stream chunk carrying the given items."""
    return "data:" + json.dumps({"items": list(items)})


@pytest.fixture
def valid_token() -> OAuthToken:
    """Fixture providing a token pair valid for one hour."""
    return OAuthToken(
        access_token=ACCESS_TOKEN,
        refresh_token=REFRESH_TOKEN,
        expires_at=now_ms() + 3_600_000,
    )


@pytest.fixture
def mock_token_store() -> Mock:
    """Fixture providing a token store that always returns a valid token."""
    store = Mock(spec=TokenStore)
    store.async_get_valid_token = AsyncMock(return_value=ACCESS_TOKEN)
    return store


@pytest.fixture
def dishwasher() -> Appliance:
    """Fixture providing a connected dishwasher."""
    return Appliance(
        ha_id=DISHWASHER_HA_ID,
        type=ApplianceType.DISHWASHER,
        name="Dishwasher",
        brand="SIEMENS",
        vib="SN658X06TE",
        connected=True,
    )


@pytest.fixture
def washer() -> Appliance:
    """Fixture providing a connected washer."""
    return Appliance(
        ha_id=WASHER_HA_ID,
        type=ApplianceType.WASHER,
        name="Washer",
        brand="BOSCH",
        vib="WAV28KH1BY",
        connected=True,
    )


@pytest.fixture
def sample_appliances_response() -> dict:
    """Fixture providing a sample appliance list response.

    Returns:
        A dictionary with two supported appliances and one unsupported one.

    """
    return {
        "data": {
            "homeappliances": [
                {
                    "haId": DISHWASHER_HA_ID,
                    "name": "Dishwasher",
                    "type": "Dishwasher",
                    "brand": "SIEMENS",
                    "vib": "SN658X06TE",
                    "connected": True,
                },
                {
                    "haId": WASHER_HA_ID,
                    "name": "Washer",
                    "type": "Washer",
                    "brand": "BOSCH",
                    "vib": "WAV28KH1BY",
                    "connected": False,
                },
                {
                    "haId": "NEFF-TOASTER-000",
                    "name": "Toaster",
                    "type": "Toaster",
                    "connected": True,
                },
            ]
        }
    }


@pytest.fixture
def sample_token_response() -> dict:
    """Fixture providing a token endpoint response."""
    return {
        "access_token": "new_access_token",
        "refresh_token": "new_refresh_token",
        "expires_in": 86400,
        "token_type": "Bearer",
        "scope": "IdentifyAppliance Monitor Settings Control",
    }
