"""
Shared helpers and factory functions for OneStep GPS tests.
Import from this module in each test file to avoid duplication.
"""

from __future__ import annotations

import asyncio
import copy
import json
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

from custom_components.onestepgps.coordinator import OneStepGpsCoordinator
from custom_components.onestepgps.models import Coordinate, Device, DriveStatus, SpeedInfo
from custom_components.onestepgps.preferences import UserPreferences

FIXTURES = Path(__file__).parent / "fixtures"


def load_fixture(name: str = "fleet_response.json") -> dict:
    return json.loads((FIXTURES / name).read_text())


def make_device(device_id: str = "dev-1", **kwargs) -> Device:
    defaults = dict(
        id=device_id,
        name=f"Device {device_id}",
        make="Ford",
        model="Transit",
        last_updated=datetime(2025, 4, 20, 10, 0, 0, tzinfo=timezone.utc),
        drive_status=DriveStatus.PARKED,
        is_online=True,
        factory_id=f"FACTORY-{device_id}",
        location=Coordinate(36.0, -119.0),
        battery_voltage=12.4,
        current_speed=SpeedInfo(value=0.0, unit="mph", display="0 mph"),
        activated_at=None,
    )
    defaults.update(kwargs)
    return Device(**defaults)


def make_raw_device(device_id: str = "dev-1", /, **kwargs) -> dict:
    """A single wire-format device entry; kwargs override top-level keys."""
    raw = {
        "device_id": device_id,
        "display_name": f"Device {device_id}",
        "make": "Ford",
        "model": "Transit",
        "updated_at": "2025-04-20T10:00:00.123Z",
        "online": True,
        "factory_id": f"FACTORY-{device_id}",
        "activated_at": "2024-01-01T00:00:00Z",
        "latest_accurate_device_point": {
            "lat": 36.5,
            "lng": -119.5,
            "device_point_detail": {
                "external_volt": 12.4,
                "speed": {"value": 50, "unit": "km/h", "display": "50 km/h"},
            },
            "device_state": {"drive_status": "driving"},
        },
    }
    raw.update(kwargs)
    return raw


def make_payload(*raw_devices) -> dict:
    return {"result_list": [copy.deepcopy(d) for d in raw_devices]}


def make_preference_store(preferences: UserPreferences | None = None) -> MagicMock:
    store = MagicMock()
    store.async_load = AsyncMock(return_value=preferences or UserPreferences())
    store.async_save = AsyncMock()
    return store


class InMemoryStore:
    """Stand-in for homeassistant.helpers.storage.Store keeping the blob in memory."""

    def __init__(self, hass, version, key) -> None:
        self.key = key
        self.version = version
        self.saved = None

    async def async_load(self):
        return copy.deepcopy(self.saved)

    async def async_save(self, data) -> None:
        # Mirror the JSON round trip the real store does
        self.saved = json.loads(json.dumps(data))


def make_coordinator(hass=None, preferences: UserPreferences | None = None, api_key: str = "test-key") -> OneStepGpsCoordinator:
    """Build a coordinator with a mocked hass and a mocked preference store."""
    if hass is None:
        hass = MagicMock()
        hass.async_create_task = lambda coro: asyncio.ensure_future(coro)
    return OneStepGpsCoordinator(hass, api_key, make_preference_store(preferences))
