"""
Platform for GPS sensor integration.
This module is responsible for the speed and battery voltage sensor entities
of each device, read from the coordinator's latest snapshot.
"""
from __future__ import annotations

import logging

from homeassistant.components.sensor import SensorDeviceClass, SensorEntity, SensorStateClass
from homeassistant.const import UnitOfElectricPotential, UnitOfSpeed
from homeassistant.core import HomeAssistant
from homeassistant import config_entries

from .coordinator import OneStepGpsCoordinator
from .entity import OneStepGpsEntity, add_entities_for_new_devices

_LOGGER = logging.getLogger(__name__)


class OneStepGpsSpeedSensor(OneStepGpsEntity, SensorEntity):
    """Current speed, normalised to mph."""

    _attr_name = "Speed"
    _attr_icon = "mdi:speedometer"
    _attr_device_class = SensorDeviceClass.SPEED
    _attr_state_class = SensorStateClass.MEASUREMENT
    _attr_native_unit_of_measurement = UnitOfSpeed.MILES_PER_HOUR

    def __init__(self, coordinator: OneStepGpsCoordinator, device_id: str) -> None:
        super().__init__(coordinator, device_id, "speed")

    @property
    def native_value(self) -> float | None:
        device = self.device
        if device is None or device.current_speed is None:
            return None
        return round(device.current_speed.speed_in_mph, 1)

    @property
    def extra_state_attributes(self) -> dict | None:
        device = self.device
        if device is None or device.current_speed is None:
            return None
        # Label exactly as the API formatted it
        return {"display": device.current_speed.display}


class OneStepGpsVoltageSensor(OneStepGpsEntity, SensorEntity):
    """External (vehicle battery) voltage."""

    _attr_name = "Battery voltage"
    _attr_icon = "mdi:car-battery"
    _attr_device_class = SensorDeviceClass.VOLTAGE
    _attr_state_class = SensorStateClass.MEASUREMENT
    _attr_native_unit_of_measurement = UnitOfElectricPotential.VOLT

    def __init__(self, coordinator: OneStepGpsCoordinator, device_id: str) -> None:
        super().__init__(coordinator, device_id, "voltage")

    @property
    def native_value(self) -> float | None:
        device = self.device
        if device is None:
            return None
        return device.battery_voltage


async def async_setup_entry(
    hass: HomeAssistant,
    config_entry: config_entries.ConfigEntry,
    async_add_entities,
):
    """Add sensors for passed config_entry in HA."""
    coordinator: OneStepGpsCoordinator = config_entry.runtime_data
    _LOGGER.debug("Adding OneStep GPS speed and voltage sensors")
    add_entities_for_new_devices(
        coordinator,
        config_entry,
        async_add_entities,
        lambda device_id: [
            OneStepGpsSpeedSensor(coordinator, device_id),
            OneStepGpsVoltageSensor(coordinator, device_id),
        ],
    )
