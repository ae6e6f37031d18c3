DOMAIN = "onestepgps"
VERSION = "0.1.0"

CONF_ENTRY_NAME = "entry_name"
CONF_SORT_ORDER = "sort_order"
CONF_REFRESH_INTERVAL = "map_refresh_interval"
CONF_HIDDEN_DEVICES = "hidden_devices"

# Credential is read from the config entry, falling back to this variable
API_KEY_ENV = "ONESTEPGPS_API_KEY"

API_URL = "https://track.onestepgps.com/v3/api/public/device"
REQUEST_TIMEOUT = 15  # seconds, single attempt

# Auto-refresh period (seconds)
DEFAULT_REFRESH_INTERVAL = 30.0
MIN_REFRESH_INTERVAL = 10.0
MAX_REFRESH_INTERVAL = 300.0

# Preference blob in .storage/
STORAGE_KEY = f"{DOMAIN}.user_preferences"
STORAGE_VERSION = 1

KMH_TO_MPH = 0.621371

# Round-tripped coordinates are compared with this absolute tolerance (degrees)
COORDINATE_TOLERANCE = 1e-6

# HTTP statuses treated as a rejected API key
AUTH_FAILURE_STATUSES = (401, 403)
