"""
FleetData: immutable snapshot of the fleet shared with entities.

This is a pure data module with no HA or network dependencies.
"""
from __future__ import annotations

import dataclasses
import enum
from datetime import datetime

from .models import Device
from .preferences import SortOrder, UserPreferences


class FleetState(str, enum.Enum):
    """Lifecycle of the most recent fetch."""

    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


def sort_devices(devices, sort_order: SortOrder) -> list[Device]:
    """Stable sort following the user's chosen order."""
    if sort_order == SortOrder.BY_STATUS:
        # Alphabetic on the raw status string, not a severity ranking
        return sorted(devices, key=lambda d: d.drive_status.value)
    if sort_order == SortOrder.BY_RECENT_UPDATE:
        return sorted(devices, key=lambda d: d.last_updated, reverse=True)
    return sorted(devices, key=lambda d: d.name)


@dataclasses.dataclass(frozen=True)
class FleetData:
    """
    Typed, copy-on-write snapshot of the fleet.

    Always replace via dataclasses.replace(), never mutate in place.
    """

    # Devices from the last successful fetch, replaced wholesale each time
    devices: tuple[Device, ...] = ()

    preferences: UserPreferences = dataclasses.field(default_factory=UserPreferences)

    state: FleetState = FleetState.IDLE

    # Error of the last failed fetch; cleared by the next successful one
    error: Exception | None = None

    # When the current device collection was fetched
    last_fetch: datetime | None = None

    @property
    def is_loading(self) -> bool:
        return self.state == FleetState.LOADING

    def displayed_devices(self) -> list[Device]:
        """Devices minus the hidden ones, in the preferred order."""
        hidden = self.preferences.hidden_device_ids
        visible = [d for d in self.devices if d.id not in hidden]
        return sort_devices(visible, self.preferences.sort_order)

    def search_devices(self, text: str) -> list[Device]:
        """Displayed devices whose name, id or status contains text (case-insensitive)."""
        displayed = self.displayed_devices()
        needle = text.strip().casefold()
        if not needle:
            return displayed
        return [
            d for d in displayed
            if needle in d.name.casefold()
            or needle in d.id.casefold()
            or needle in d.drive_status.value.casefold()
        ]

    def get_device(self, device_id: str) -> Device | None:
        for device in self.devices:
            if device.id == device_id:
                return device
        return None
