"""
Low-level HTTP request library for OneStep GPS API communication.
This module performs single-attempt requests and maps every failure onto
NetworkError (transport) or DecodeError (payload).
"""
import asyncio
import json
import logging

import aiohttp

from .const import REQUEST_TIMEOUT
from .errors import DecodeError, NetworkError

_LOGGER = logging.getLogger(__name__)


async def make_request(
    method: str,
    url: str,
    headers: dict,
    params: dict = None,
    timeout: int = REQUEST_TIMEOUT,
):
    """
    Make one HTTP request and return the parsed JSON body.

    Args:
        method: HTTP method (only GET is used by the integration)
        url: Target URL for the request
        headers: HTTP headers dictionary
        params: URL query parameters (optional)
        timeout: Total timeout in seconds

    Returns:
        Parsed JSON response

    Raises:
        NetworkError: On DNS/connection errors, timeouts and non-2xx statuses
        DecodeError: If the body is not valid JSON
    """
    method = method.upper()
    timeout_config = aiohttp.ClientTimeout(total=timeout)

    try:
        async with aiohttp.ClientSession(timeout=timeout_config) as session:
            async with session.request(method, url, headers=headers, params=params) as response:
                return await _process_response(response, url)
    except (asyncio.TimeoutError, TimeoutError) as e:
        _LOGGER.warning("Timeout on %s request to %s after %ss", method, url, timeout)
        raise NetworkError(f"Timeout after {timeout}s") from e
    except aiohttp.ClientError as e:
        _LOGGER.warning("%s request to %s failed: %s", method, url, e)
        raise NetworkError(f"Connection error: {e}") from e


async def _process_response(response, url: str):
    """
    Check the status and decode the JSON body.

    Raises:
        NetworkError: For non-2xx statuses
        DecodeError: If the body is not valid UTF-8 JSON
    """
    if not 200 <= response.status < 300:
        text = await response.text(errors="replace")
        _LOGGER.warning(
            "Received error response from %s: status %s, body preview: %s",
            url, response.status, text[:200]
        )
        raise NetworkError(f"HTTP {response.status} from {url}", status=response.status)

    body = await response.read()
    try:
        # UnicodeDecodeError is a ValueError too
        return json.loads(body)
    except ValueError as e:
        content_type = response.headers.get("Content-Type", "")
        _LOGGER.warning(
            "Response from %s is not JSON (content-type: %s): %r",
            url, content_type, body[:200]
        )
        raise DecodeError(f"Expected JSON but got {content_type}") from e
