"""
User preferences and their persistence.

Preferences are convenience state: loading never fails (defaults are used
instead) and saving is best-effort. The blob lives in Home Assistant's
.storage directory under one key per config entry.
"""
from __future__ import annotations

import dataclasses
import enum
import logging
from types import MappingProxyType
from typing import Mapping

from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.storage import Store

from .const import (
    DEFAULT_REFRESH_INTERVAL,
    MAX_REFRESH_INTERVAL,
    MIN_REFRESH_INTERVAL,
    STORAGE_KEY,
    STORAGE_VERSION,
)
from .errors import PersistenceError

_LOGGER = logging.getLogger(__name__)


class SortOrder(str, enum.Enum):
    """Ordering applied to the displayed devices."""

    BY_NAME = "byName"
    BY_STATUS = "byStatus"
    BY_RECENT_UPDATE = "byRecentUpdate"


def clamp_refresh_interval(seconds: float) -> float:
    return min(max(float(seconds), MIN_REFRESH_INTERVAL), MAX_REFRESH_INTERVAL)


@dataclasses.dataclass(frozen=True)
class UserPreferences:
    """
    Persisted user configuration.

    Always replace via dataclasses.replace(), never mutate in place.
    """

    hidden_device_ids: frozenset[str] = frozenset()
    sort_order: SortOrder = SortOrder.BY_NAME
    map_refresh_interval: float = DEFAULT_REFRESH_INTERVAL
    # device_id → icon name shown by the map tracker; read-only, left out of the hash
    custom_device_icons: Mapping[str, str] = dataclasses.field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "hidden_device_ids", frozenset(self.hidden_device_ids))
        object.__setattr__(self, "custom_device_icons", MappingProxyType(dict(self.custom_device_icons)))

    def to_dict(self) -> dict:
        return {
            "hiddenDeviceIDs": sorted(self.hidden_device_ids),
            "sortOrder": self.sort_order.value,
            "mapRefreshInterval": self.map_refresh_interval,
            "customDeviceIcons": dict(self.custom_device_icons),
        }

    @classmethod
    def from_dict(cls, data) -> UserPreferences:
        """Rebuild preferences from the stored blob. Raises PersistenceError on a bad shape."""
        if not isinstance(data, dict):
            raise PersistenceError(f"Preference blob is not an object: {data!r}")
        try:
            hidden = data.get("hiddenDeviceIDs", [])
            icons = data.get("customDeviceIcons", {})
            interval = data.get("mapRefreshInterval", DEFAULT_REFRESH_INTERVAL)
            if not isinstance(hidden, list) or not all(isinstance(i, str) for i in hidden):
                raise PersistenceError(f"hiddenDeviceIDs is not a list of strings: {hidden!r}")
            if not isinstance(icons, dict):
                raise PersistenceError(f"customDeviceIcons is not an object: {icons!r}")
            if isinstance(interval, bool) or not isinstance(interval, (int, float)):
                raise PersistenceError(f"mapRefreshInterval is not a number: {interval!r}")
            return cls(
                hidden_device_ids=frozenset(hidden),
                sort_order=SortOrder(data.get("sortOrder", SortOrder.BY_NAME.value)),
                map_refresh_interval=clamp_refresh_interval(interval),
                custom_device_icons={str(k): str(v) for k, v in icons.items()},
            )
        except ValueError as e:
            raise PersistenceError(f"Invalid preference value: {e}") from e


class PreferenceStore:
    """Loads and saves UserPreferences as a single versioned storage blob."""

    def __init__(self, hass: HomeAssistant, key: str = STORAGE_KEY) -> None:
        self._store: Store[dict] = Store(hass, STORAGE_VERSION, key)

    async def async_load(self) -> UserPreferences:
        """Return stored preferences, or defaults on any read or parse error."""
        try:
            data = await self._store.async_load()
        except (HomeAssistantError, OSError, ValueError) as e:
            _LOGGER.warning("Could not read stored preferences, using defaults: %s", e)
            return UserPreferences()

        if data is None:
            return UserPreferences()

        try:
            return UserPreferences.from_dict(data)
        except PersistenceError as e:
            _LOGGER.warning("Stored preferences are corrupt, using defaults: %s", e)
            return UserPreferences()

    async def async_save(self, preferences: UserPreferences) -> None:
        """Persist preferences; failures are logged and dropped."""
        try:
            await self._store.async_save(preferences.to_dict())
        except Exception as e:  # noqa: BLE001
            _LOGGER.error("Failed to save preferences: %s", e)
