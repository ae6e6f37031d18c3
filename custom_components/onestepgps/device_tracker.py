"""
Platform for GPS tracker integration.
One tracker entity per device places the fleet on the Home Assistant map.
"""
from __future__ import annotations

import logging

from homeassistant.components.device_tracker import SourceType, TrackerEntity
from homeassistant.core import HomeAssistant
from homeassistant import config_entries

from .coordinator import OneStepGpsCoordinator
from .entity import OneStepGpsEntity, add_entities_for_new_devices

_LOGGER = logging.getLogger(__name__)

DEFAULT_ICON = "mdi:car"


class OneStepGpsTracker(OneStepGpsEntity, TrackerEntity):
    """Representation of a OneStep GPS device location."""

    _attr_name = None

    def __init__(self, coordinator: OneStepGpsCoordinator, device_id: str) -> None:
        """Initialize the tracker."""
        super().__init__(coordinator, device_id, "location")

    @property
    def latitude(self) -> float | None:
        device = self.device
        if device is None or device.location is None:
            return None
        return device.location.latitude

    @property
    def longitude(self) -> float | None:
        device = self.device
        if device is None or device.location is None:
            return None
        return device.location.longitude

    @property
    def source_type(self) -> SourceType:
        return SourceType.GPS

    @property
    def icon(self) -> str:
        return self.coordinator.preferences.custom_device_icons.get(self._device_id, DEFAULT_ICON)

    @property
    def extra_state_attributes(self) -> dict | None:
        device = self.device
        if device is None:
            return None
        return {
            "drive_status": device.drive_status.value,
            "online": device.is_online,
            "last_updated": device.last_updated.isoformat(),
            "factory_id": device.factory_id,
        }


async def async_setup_entry(
    hass: HomeAssistant,
    config_entry: config_entries.ConfigEntry,
    async_add_entities,
):
    """Add trackers for passed config_entry in HA."""
    coordinator: OneStepGpsCoordinator = config_entry.runtime_data
    _LOGGER.debug("Adding OneStep GPS trackers")
    add_entities_for_new_devices(
        coordinator,
        config_entry,
        async_add_entities,
        lambda device_id: [OneStepGpsTracker(coordinator, device_id)],
    )
