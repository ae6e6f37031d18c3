"""Base entity shared by the OneStep GPS platforms."""
from __future__ import annotations

from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .coordinator import OneStepGpsCoordinator
from .models import Device


class OneStepGpsEntity(CoordinatorEntity[OneStepGpsCoordinator]):
    """
    Entity bound to one device id.

    Reads the device from the latest snapshot on every access; hidden devices
    and devices missing from the last fetch report unavailable.
    """

    _attr_has_entity_name = True

    def __init__(self, coordinator: OneStepGpsCoordinator, device_id: str, key: str) -> None:
        super().__init__(coordinator)
        self._device_id = device_id
        self._attr_unique_id = f"{device_id}_{key}"

    @property
    def device(self) -> Device | None:
        return self.coordinator.data.get_device(self._device_id)

    @property
    def device_info(self):
        return self.coordinator.get_device_info(self._device_id)

    @property
    def available(self) -> bool:
        if self._device_id in self.coordinator.preferences.hidden_device_ids:
            return False
        return self.device is not None


def add_entities_for_new_devices(coordinator: OneStepGpsCoordinator, entry, async_add_entities, factory) -> None:
    """
    Add entities for the devices in the current snapshot, and again whenever a
    later fetch reports device ids that have not been seen yet.
    """
    known: set[str] = set()

    def _add_new() -> None:
        new_ids = [d.id for d in coordinator.data.devices if d.id not in known]
        if not new_ids:
            return
        known.update(new_ids)
        async_add_entities([entity for device_id in new_ids for entity in factory(device_id)])

    _add_new()
    entry.async_on_unload(coordinator.async_add_listener(_add_new))
