"""
Device fleet fetching from the OneStep GPS API.

Responsible for:
- Issuing the single latest-point request for the whole fleet
- Handing the JSON envelope to the decode rules
- Classifying an API key as usable, rejected or unreachable
"""
import logging

from custom_components.onestepgps.api.decode import decode_fleet
from custom_components.onestepgps.const import API_URL, AUTH_FAILURE_STATUSES, REQUEST_TIMEOUT
from custom_components.onestepgps.errors import NetworkError, OneStepGpsError
from custom_components.onestepgps.models import Device
from custom_components.onestepgps.requests import make_request

_LOGGER = logging.getLogger(__name__)


def _build_params(api_key: str) -> dict:
    return {
        "latest_point": "true",
        "api-key": api_key,
    }


async def fetch_fleet_payload(api_key: str, timeout: int = REQUEST_TIMEOUT) -> dict:
    """
    Fetch the raw, undecoded fleet envelope.

    Corresponding CURL command:
    curl -X 'GET' 'https://track.onestepgps.com/v3/api/public/device?latest_point=true&api-key=API_KEY'
    """
    headers = {"accept": "application/json"}
    return await make_request("GET", API_URL, headers, params=_build_params(api_key), timeout=timeout)


async def fetch_devices(api_key: str, timeout: int = REQUEST_TIMEOUT) -> list[Device]:
    """
    Fetch and decode every device in the account.

    Exactly one request, no retry. Raises NetworkError or DecodeError.
    """
    payload = await fetch_fleet_payload(api_key, timeout=timeout)
    devices = decode_fleet(payload)
    _LOGGER.debug("Decoded %s devices", len(devices))
    return devices


async def check_api_key(api_key: str) -> str | None:
    """
    Try one fetch with api_key.

    Returns None when it works, "invalid_auth" when the API rejects the key
    and "cannot_connect" for any other failure.
    """
    try:
        await fetch_devices(api_key)
    except NetworkError as e:
        if e.status in AUTH_FAILURE_STATUSES:
            return "invalid_auth"
        return "cannot_connect"
    except OneStepGpsError as e:
        _LOGGER.warning("API key check got an unusable response: %s", e)
        return "cannot_connect"
    return None
