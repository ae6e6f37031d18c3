import logging
import os

from homeassistant import config_entries, core
from homeassistant.const import CONF_API_KEY, Platform
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import ConfigEntryAuthFailed

from .const import API_KEY_ENV, STORAGE_KEY
from .coordinator import OneStepGpsCoordinator
from .preferences import PreferenceStore

PLATFORMS: list[Platform] = [Platform.DEVICE_TRACKER, Platform.SENSOR]
_LOGGER = logging.getLogger(__name__)


def _resolve_api_key(entry: config_entries.ConfigEntry) -> str | None:
    """API key from the entry, or from the environment when the entry has none."""
    return entry.data.get(CONF_API_KEY) or os.getenv(API_KEY_ENV)


async def async_setup_entry(
    hass: core.HomeAssistant, entry: config_entries.ConfigEntry
) -> bool:
    """Set up platform from a ConfigEntry."""
    api_key = _resolve_api_key(entry)
    if not api_key:
        raise ConfigEntryAuthFailed(
            f"No OneStep GPS API key configured (set it in the entry or {API_KEY_ENV})"
        )

    store = PreferenceStore(hass, f"{STORAGE_KEY}.{entry.entry_id}")
    coordinator = OneStepGpsCoordinator(hass, api_key, store, config_entry=entry)

    # Raises ConfigEntryNotReady / ConfigEntryAuthFailed on failure
    await coordinator.async_config_entry_first_refresh()

    coordinator.async_start_auto_refresh()
    entry.async_on_unload(coordinator.async_stop_auto_refresh)
    entry.runtime_data = coordinator

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    _LOGGER.debug("Entry %s set up with %s devices", entry.entry_id, len(coordinator.data.devices))

    return True


async def async_unload_entry(
    hass: core.HomeAssistant, entry: config_entries.ConfigEntry
) -> bool:
    """Unload a config entry."""
    unloaded = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if unloaded:
        await entry.runtime_data.async_shutdown()
    return unloaded


async def async_remove_config_entry_device(
    hass: HomeAssistant, config_entry: config_entries.ConfigEntry, device_entry
) -> bool:
    """Allow removing a device; it comes back if the API still reports it."""
    return True
