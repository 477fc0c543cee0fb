"""OAuth support for the Home Connect API.

This module provides the authorization-code and refresh-token exchanges,
the signed state parameter used on the redirect callback, and the shared
token store that hands out valid access tokens.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import hashlib
import hmac
import logging
import time
from typing import TYPE_CHECKING, Any
from urllib.parse import urlencode

import httpx

from .api import (
    HomeConnectApiClientError,
    HomeConnectAuthError,
    is_client_error,
    is_http_error,
)
from .const import (
    CONF_ACCESS_TOKEN,
    CONF_REFRESH_TOKEN,
    CONF_TOKEN_EXPIRES_AT,
    OAUTH_AUTHORIZE_URL,
    OAUTH_SCOPE,
    OAUTH_TOKEN_URL,
    REQUEST_TIMEOUT,
    STATE_MAX_AGE_MS,
    TOKEN_REFRESH_MARGIN_MS,
)
from .models import OAuthToken

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

_LOGGER = logging.getLogger(__name__)

STATE_PARTS_COUNT = 2


def now_ms() -> int:
    """Return the current time in epoch milliseconds."""
    return int(time.time() * 1000)


def _state_hash(timestamp: str, client_id: str, client_secret: str) -> str:
    message = f"{timestamp}:{client_id}:{client_secret}"
    return hmac.new(
        client_secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256
    ).hexdigest()


def generate_secure_state(
    client_id: str, client_secret: str, timestamp_ms: int | None = None
) -> str:
    """Generate a signed, timestamped state value for the authorize redirect.

    Args:
        client_id: OAuth client identifier.
        client_secret: OAuth client secret, also used as the HMAC key.
        timestamp_ms: Timestamp to embed, defaults to now.

    Returns:
        Base64 encoded ``timestamp:hash`` string.

    """
    timestamp = str(now_ms() if timestamp_ms is None else timestamp_ms)
    state = f"{timestamp}:{_state_hash(timestamp, client_id, client_secret)}"
    return base64.b64encode(state.encode("utf-8")).decode("ascii")


def validate_secure_state(
    state: str | None,
    client_id: str,
    client_secret: str,
    current_ms: int | None = None,
) -> bool:
    """Validate a state value received on the OAuth callback.

    Fails closed: any decoding problem, a missing or malformed timestamp,
    an age outside the accepted window, or a hash mismatch rejects the state.
    """
    if not state:
        _LOGGER.error("No state received in callback")
        return False

    try:
        decoded = base64.b64decode(state, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError, ValueError):
        _LOGGER.error("Invalid state encoding")
        return False

    parts = decoded.split(":")
    if len(parts) != STATE_PARTS_COUNT:
        _LOGGER.error("Invalid state format")
        return False

    timestamp, received_hash = parts
    try:
        issued_at = int(timestamp)
    except ValueError:
        _LOGGER.error("State timestamp is malformed")
        return False

    age = (now_ms() if current_ms is None else current_ms) - issued_at
    if age < 0 or age > STATE_MAX_AGE_MS:
        _LOGGER.error("State timestamp is too old or invalid: %sms", age)
        return False

    expected_hash = _state_hash(timestamp, client_id, client_secret)
    if not hmac.compare_digest(expected_hash, received_hash):
        _LOGGER.error("State hash does not match")
        return False

    return True


def build_authorize_url(client_id: str, redirect_uri: str, state: str) -> str:
    """Build the vendor authorization URL for the redirect step."""
    params = {
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "response_type": "code",
        "scope": OAUTH_SCOPE,
        "state": state,
    }
    return f"{OAUTH_AUTHORIZE_URL}?{urlencode(params)}"


def extract_token(
    data: Any, previous_refresh_token: str | None = None, issued_ms: int | None = None
) -> OAuthToken:
    """Build an OAuthToken from a token endpoint response body.

    Raises:
        HomeConnectAuthError: If the body misses a required field.

    """
    if not isinstance(data, dict):
        error_msg = "Malformed token response"
        raise HomeConnectAuthError(error_msg)

    access_token = data.get("access_token")
    refresh_token = data.get("refresh_token") or previous_refresh_token
    expires_in = data.get("expires_in")
    if not access_token or not refresh_token or not isinstance(expires_in, int | float):
        error_msg = "Token response is missing required fields"
        raise HomeConnectAuthError(error_msg)

    issued = now_ms() if issued_ms is None else issued_ms
    return OAuthToken(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_at=issued + int(expires_in * 1000),
    )


def token_from_data(data: Mapping[str, Any]) -> OAuthToken | None:
    """Return the token pair stored in config entry data, if any."""
    if not data.get(CONF_REFRESH_TOKEN):
        return None
    return OAuthToken(
        access_token=data.get(CONF_ACCESS_TOKEN, ""),
        refresh_token=data[CONF_REFRESH_TOKEN],
        expires_at=int(data.get(CONF_TOKEN_EXPIRES_AT, 0)),
    )


def token_to_data(token: OAuthToken) -> dict[str, Any]:
    """Return the config entry fields of a token pair."""
    return {
        CONF_ACCESS_TOKEN: token.access_token,
        CONF_REFRESH_TOKEN: token.refresh_token,
        CONF_TOKEN_EXPIRES_AT: token.expires_at,
    }


async def _async_token_request(
    session: httpx.AsyncClient,
    body: dict[str, str],
    previous_refresh_token: str | None = None,
) -> OAuthToken:
    try:
        response = await session.post(
            OAUTH_TOKEN_URL,
            data=body,
            headers={"content-type": "application/x-www-form-urlencoded"},
            timeout=REQUEST_TIMEOUT,
        )
    except httpx.HTTPError as err:
        error_msg = f"Token request failed: {err}"
        raise HomeConnectApiClientError(error_msg) from err

    if is_http_error(response.status_code):
        error_msg = f"Token request rejected: {response.status_code}"
        raise HomeConnectAuthError(error_msg, response.status_code)

    try:
        data = response.json()
    except ValueError as err:
        error_msg = f"Malformed token response: {err}"
        raise HomeConnectAuthError(error_msg) from err

    return extract_token(data, previous_refresh_token)


async def async_exchange_code(
    session: httpx.AsyncClient,
    client_id: str,
    client_secret: str,
    code: str,
    redirect_uri: str,
) -> OAuthToken:
    """Exchange an authorization code for a token pair.

    Raises:
        HomeConnectAuthError: If the code is rejected or the response is malformed.
        HomeConnectApiClientError: If the token endpoint cannot be reached.

    """
    _LOGGER.debug("Acquiring OAuth token from authorization code")
    return await _async_token_request(
        session,
        {
            "grant_type": "authorization_code",
            "code": code,
            "client_id": client_id,
            "client_secret": client_secret,
            "redirect_uri": redirect_uri,
        },
    )


async def async_refresh_token(
    session: httpx.AsyncClient,
    client_id: str,
    client_secret: str,
    refresh_token: str,
) -> OAuthToken:
    """Exchange a refresh token for a new token pair.

    Raises:
        HomeConnectAuthError: If the refresh is rejected or the response is
            malformed.
        HomeConnectApiClientError: If the token endpoint cannot be reached.

    """
    _LOGGER.debug("Refreshing OAuth token")
    return await _async_token_request(
        session,
        {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": client_id,
            "client_secret": client_secret,
        },
        previous_refresh_token=refresh_token,
    )


class TokenStore:
    """Holds the current token pair and refreshes it on demand.

    Concurrent callers that find the token inside the refresh margin share
    one refresh task, so the vendor never sees two refresh requests for the
    same refresh token.
    """

    def __init__(
        self,
        session: httpx.AsyncClient,
        client_id: str,
        client_secret: str,
        token: OAuthToken | None = None,
        on_token_update: Callable[[OAuthToken | None], None] | None = None,
        margin_ms: int = TOKEN_REFRESH_MARGIN_MS,
    ) -> None:
        """Initialize the token store."""
        self._session = session
        self._client_id = client_id
        self._client_secret = client_secret
        self._token = token
        self._on_token_update = on_token_update
        self._margin_ms = margin_ms
        self._refresh_task: asyncio.Task[OAuthToken] | None = None

    @property
    def token(self) -> OAuthToken | None:
        """Return the stored token."""
        return self._token

    async def async_get_valid_token(self) -> str:
        """Return an access token that is outside the refresh margin.

        A refresh the token endpoint rejects with a 4xx while the access
        token has expired invalidates the store, so later callers fail fast
        until the operator re-authorizes.

        Raises:
            HomeConnectAuthError: If there is no refresh token, or the refresh
                was rejected and the current access token has already expired.
            HomeConnectApiClientError: If the token endpoint could not be
                reached and the current access token has already expired.

        """
        token = self._token
        if token is None or not token.refresh_token:
            error_msg = "No refresh token available, re-authorization required"
            raise HomeConnectAuthError(error_msg)

        if not token.needs_refresh(now_ms(), self._margin_ms):
            return token.access_token

        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.create_task(self._async_refresh(token))
        refresh_task = self._refresh_task

        try:
            new_token = await asyncio.shield(refresh_task)
        except HomeConnectApiClientError as err:
            if not token.is_expired(now_ms()):
                _LOGGER.warning(
                    "Token refresh failed, using current token until expiry: %s", err
                )
                return token.access_token
            if (
                isinstance(err, HomeConnectAuthError)
                and err.status is not None
                and is_client_error(err.status)
                and self._token is token
            ):
                await self.async_invalidate()
            raise
        return new_token.access_token

    async def _async_refresh(self, token: OAuthToken) -> OAuthToken:
        new_token = await async_refresh_token(
            self._session, self._client_id, self._client_secret, token.refresh_token
        )
        self._token = new_token
        self._notify(new_token)
        _LOGGER.info("Successfully refreshed OAuth token")
        return new_token

    async def async_invalidate(self) -> None:
        """Drop the stored token so the operator has to re-authorize."""
        if self._refresh_task is not None and not self._refresh_task.done():
            self._refresh_task.cancel()
        self._refresh_task = None
        self._token = None
        self._notify(None)
        _LOGGER.warning("OAuth token invalidated, re-authorization required")

    def _notify(self, token: OAuthToken | None) -> None:
        if self._on_token_update is None:
            return
        try:
            self._on_token_update(token)
        except Exception:
            _LOGGER.exception("Error in token update callback")
