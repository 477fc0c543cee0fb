"""
Configuration flow for Home Connect SSE integration.

This module runs the OAuth authorization-code flow: the operator enters the
application credentials, is redirected to the vendor authorize page, and the
callback view hands the code back to the waiting flow once its signed state
has been validated.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import TYPE_CHECKING, Any, NamedTuple

import voluptuous as vol
from aiohttp import web
from homeassistant.components.http import KEY_HASS, HomeAssistantView
from homeassistant.config_entries import (
    SOURCE_REAUTH,
    ConfigEntry,
    ConfigFlow,
    ConfigFlowResult,
    OptionsFlow,
)
from homeassistant.const import CONF_CLIENT_ID, CONF_CLIENT_SECRET
from homeassistant.core import callback
from homeassistant.data_entry_flow import UnknownFlow
from homeassistant.helpers import config_validation as cv
from homeassistant.helpers.httpx_client import get_async_client
from homeassistant.helpers.network import get_url

from . import auth
from .api import HomeConnectApiClientError, HomeConnectAuthError
from .const import (
    AUTH_CALLBACK_NAME,
    AUTH_CALLBACK_PATH,
    CONF_APPLIANCES,
    CONF_LANGUAGE,
    DATA_PENDING_AUTH,
    DEFAULT_LANGUAGE,
    DOMAIN,
    ERROR_CANNOT_CONNECT,
    ERROR_INVALID_AUTH,
    ERROR_UNKNOWN,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from homeassistant.core import HomeAssistant

_LOGGER = logging.getLogger(__name__)

CALLBACK_HTML = (
    "<html><body><script>window.close()</script>"
    "Authorization complete, this window can be closed.</body></html>"
)


class PendingAuth(NamedTuple):
    """Flow waiting for the redirect callback of its authorize request."""

    flow_id: str
    client_id: str
    client_secret: str


@callback
def async_register_callback_view(hass: HomeAssistant) -> dict[str, PendingAuth]:
    """Register the OAuth callback view once and return the pending flows."""
    if DATA_PENDING_AUTH not in hass.data:
        hass.data[DATA_PENDING_AUTH] = {}
        hass.http.register_view(HomeConnectAuthCallbackView())
    return hass.data[DATA_PENDING_AUTH]


class HomeConnectAuthCallbackView(HomeAssistantView):
    """Receives the vendor redirect and resumes the matching flow."""

    url = AUTH_CALLBACK_PATH
    name = AUTH_CALLBACK_NAME
    requires_auth = False

    async def get(self, request: web.Request) -> web.Response:
        """Validate the state and pass the code to the waiting flow."""
        hass = request.app[KEY_HASS]
        state = request.query.get("state", "")
        pending_flows: dict[str, PendingAuth] = hass.data.get(DATA_PENDING_AUTH, {})
        pending = pending_flows.pop(state, None)

        if pending is None or not auth.validate_secure_state(
            state, pending.client_id, pending.client_secret
        ):
            _LOGGER.warning("Rejected OAuth callback with invalid or expired state")
            return web.Response(
                status=HTTPStatus.BAD_REQUEST, text="Invalid or expired state"
            )

        if "code" in request.query:
            user_input = {"code": request.query["code"]}
        else:
            user_input = {"error": request.query.get("error", "missing_code")}

        try:
            await hass.config_entries.flow.async_configure(
                flow_id=pending.flow_id, user_input=user_input
            )
        except UnknownFlow:
            _LOGGER.warning("OAuth callback for a flow that no longer exists")
            return web.Response(
                status=HTTPStatus.BAD_REQUEST, text="Configuration flow not found"
            )
        return web.Response(content_type="text/html", text=CALLBACK_HTML)


class HomeConnectSseConfigFlow(ConfigFlow, domain=DOMAIN):
    """Handle configuration flow for Home Connect SSE integration."""

    VERSION = 1

    def __init__(self) -> None:
        """Initialize the config flow."""
        super().__init__()
        self._client_id: str | None = None
        self._client_secret: str | None = None
        self._language = DEFAULT_LANGUAGE
        self._redirect_uri: str | None = None
        self._code: str | None = None
        self._auth_error: str | None = None

    @staticmethod
    @callback
    def async_get_options_flow(
        config_entry: ConfigEntry,  # noqa: ARG004
    ) -> OptionsFlow:
        """Return the appliance selection flow."""
        return HomeConnectOptionsFlow()

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """
        Handle the initial step of the config flow.

        Args:
            user_input: User input data containing the application credentials.

        Returns:
            ConfigFlowResult indicating the next step.

        """
        if user_input is not None:
            self._client_id = user_input[CONF_CLIENT_ID].strip()
            self._client_secret = user_input[CONF_CLIENT_SECRET].strip()
            self._language = user_input.get(CONF_LANGUAGE, DEFAULT_LANGUAGE)

            await self.async_set_unique_id(self._client_id)
            self._abort_if_unique_id_configured()
            return await self.async_step_auth()

        return self.async_show_form(
            step_id="user",
            data_schema=vol.Schema(
                {
                    vol.Required(CONF_CLIENT_ID): str,
                    vol.Required(CONF_CLIENT_SECRET): str,
                    vol.Optional(CONF_LANGUAGE, default=DEFAULT_LANGUAGE): str,
                }
            ),
            errors={},
        )

    async def async_step_reauth(
        self, entry_data: Mapping[str, Any]
    ) -> ConfigFlowResult:
        """Start re-authorization with the stored application credentials."""
        self._client_id = entry_data[CONF_CLIENT_ID]
        self._client_secret = entry_data[CONF_CLIENT_SECRET]
        self._language = entry_data.get(CONF_LANGUAGE, DEFAULT_LANGUAGE)
        return await self.async_step_reauth_confirm()

    async def async_step_reauth_confirm(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Ask the operator to confirm the re-authorization."""
        if user_input is None:
            return self.async_show_form(step_id="reauth_confirm")
        return await self.async_step_auth()

    async def async_step_auth(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Redirect to the authorize page, then collect the callback result."""
        if user_input is None:
            self._redirect_uri = (
                f"{get_url(self.hass, prefer_external=True)}{AUTH_CALLBACK_PATH}"
            )
            state = auth.generate_secure_state(self._client_id, self._client_secret)
            self._async_forget_pending_auth()
            pending_flows = async_register_callback_view(self.hass)
            pending_flows[state] = PendingAuth(
                self.flow_id, self._client_id, self._client_secret
            )
            _LOGGER.debug("Redirecting to authorize page via %s", self._redirect_uri)
            return self.async_external_step(
                step_id="auth",
                url=auth.build_authorize_url(
                    self._client_id, self._redirect_uri, state
                ),
            )

        self._code = user_input.get("code")
        self._auth_error = user_input.get("error")
        return self.async_external_step_done(next_step_id="creation")

    @callback
    def async_remove(self) -> None:
        """Drop the pending authorize request of a finished or abandoned flow."""
        self._async_forget_pending_auth()

    @callback
    def _async_forget_pending_auth(self) -> None:
        pending_flows: dict[str, PendingAuth] = self.hass.data.get(
            DATA_PENDING_AUTH, {}
        )
        for state, pending in list(pending_flows.items()):
            if pending.flow_id == self.flow_id:
                del pending_flows[state]

    async def async_step_creation(
        self, user_input: dict[str, Any] | None = None  # noqa: ARG002
    ) -> ConfigFlowResult:
        """Exchange the authorization code and store the token pair."""
        if self._auth_error or not self._code:
            _LOGGER.warning(
                "Authorization failed (%s): %s", ERROR_INVALID_AUTH, self._auth_error
            )
            return self.async_abort(reason=ERROR_INVALID_AUTH)

        try:
            token = await auth.async_exchange_code(
                get_async_client(self.hass),
                self._client_id,
                self._client_secret,
                self._code,
                self._redirect_uri,
            )
        except HomeConnectAuthError as err:
            _LOGGER.warning("Code exchange failed (%s): %s", ERROR_INVALID_AUTH, err)
            return self.async_abort(reason=ERROR_INVALID_AUTH)
        except HomeConnectApiClientError as err:
            _LOGGER.warning(
                "Token endpoint unreachable (%s): %s", ERROR_CANNOT_CONNECT, err
            )
            return self.async_abort(reason=ERROR_CANNOT_CONNECT)
        except Exception:
            _LOGGER.exception(
                "Unexpected error during code exchange (%s)", ERROR_UNKNOWN
            )
            return self.async_abort(reason=ERROR_UNKNOWN)

        _LOGGER.info("Successfully authorized with Home Connect")
        data = {
            CONF_CLIENT_ID: self._client_id,
            CONF_CLIENT_SECRET: self._client_secret,
            CONF_LANGUAGE: self._language,
            **auth.token_to_data(token),
        }
        if self.source == SOURCE_REAUTH:
            return self.async_update_reload_and_abort(
                self._get_reauth_entry(), data_updates=data
            )
        return self.async_create_entry(
            title=f"Home Connect ({self._client_id[:8]})", data=data
        )


class HomeConnectOptionsFlow(OptionsFlow):
    """Select which appliances are tracked."""

    async def async_step_init(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Show the appliance multi-select."""
        if user_input is not None:
            return self.async_create_entry(data=user_input)

        choices: dict[str, str] = {}
        entry_data = self.hass.data.get(DOMAIN, {}).get(self.config_entry.entry_id)
        if entry_data is not None:
            choices = {
                ha_id: f"{appliance.name} ({appliance.type})"
                for ha_id, appliance in entry_data["coordinator"].discovered.items()
            }
        selected = self.config_entry.options.get(CONF_APPLIANCES, list(choices))
        for ha_id in selected:
            choices.setdefault(ha_id, ha_id)

        return self.async_show_form(
            step_id="init",
            data_schema=vol.Schema(
                {
                    vol.Optional(CONF_APPLIANCES, default=selected): cv.multi_select(
                        choices
                    ),
                }
            ),
        )
