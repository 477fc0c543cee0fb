"""Constants for Home Connect SSE integration.

This module contains all the constants used throughout the integration,
including API endpoints, configuration keys, and stream timing values.
"""

DOMAIN = "home_connect_sse"

BASE_URL = "https://api.home-connect.com"
OAUTH_AUTHORIZE_URL = f"{BASE_URL}/security/oauth/authorize"
OAUTH_TOKEN_URL = f"{BASE_URL}/security/oauth/token"  # noqa: S105
OAUTH_SCOPE = "IdentifyAppliance Monitor Settings Control"
AUTH_CALLBACK_PATH = f"/auth/{DOMAIN}/callback"
AUTH_CALLBACK_NAME = f"auth:{DOMAIN}:callback"

ENDPOINT_APPLIANCES = "/api/homeappliances"
CONTENT_TYPE_BSH = "application/vnd.bsh.sdk.v1+json"
DEFAULT_LANGUAGE = "en-US"

REQUEST_TIMEOUT = 10.0  # Seconds, REST and token endpoint
STREAM_CONNECT_TIMEOUT = 10.0
TOKEN_REFRESH_MARGIN_MS = 60_000
STATE_MAX_AGE_MS = 600_000

DEFAULT_POLL_INTERVAL = 900  # Stream keeps state current between polls
STREAM_GRACE_PERIOD = 30  # Seconds before a STOP is treated as a disconnect
STREAM_RETRY_BASE = 15
STREAM_RETRY_MAX = 900

CONF_ACCESS_TOKEN = "access_token"  # noqa: S105
CONF_REFRESH_TOKEN = "refresh_token"  # noqa: S105
CONF_TOKEN_EXPIRES_AT = "token_expires_at"  # noqa: S105
CONF_LANGUAGE = "language"
CONF_APPLIANCES = "appliances"

ERROR_INVALID_AUTH = "invalid_auth"
ERROR_CANNOT_CONNECT = "cannot_connect"
ERROR_UNKNOWN = "unknown_error"

POWER_STATE_KEY = "BSH.Common.Setting.PowerState"
POWER_STATE_ON = "BSH.Common.EnumType.PowerState.On"
POWER_STATE_OFF = "BSH.Common.EnumType.PowerState.Off"
REMAINING_PROGRAM_TIME_KEY = "BSH.Common.Option.RemainingProgramTime"
APPLIANCE_CONNECTED_KEY = "BSH.Common.Appliance.Connected"
ACTIVE_PROGRAM_KEY = "BSH.Common.Root.ActiveProgram"
SELECTED_PROGRAM_KEY = "BSH.Common.Root.SelectedProgram"

ATTR_OPERATION_STATE = "operationState"
ATTR_POWER_STATE = "powerState"
ATTR_PROGRAM_PROGRESS = "programProgress"
ATTR_STREAM_STATUS = "eventStreamStatus"

# Operation states in which a remaining time of zero is plausible
ZERO_REMAINING_TIME_STATES = frozenset(
    {"Finished", "Inactive", "Ready", "Error", "Aborting"}
)

# hass.data key of the OAuth flows waiting for their redirect callback
DATA_PENDING_AUTH = f"{DOMAIN}_pending_auth"

SERVICE_START_PROGRAM = "start_program"
SERVICE_STOP_PROGRAM = "stop_program"
SERVICE_SELECT_PROGRAM = "select_program"
SERVICE_SET_PROGRAM_OPTION = "set_program_option"
ATTR_HA_ID = "ha_id"
ATTR_PROGRAM = "program"
ATTR_OPTIONS = "options"
ATTR_KEY = "key"
ATTR_VALUE = "value"
