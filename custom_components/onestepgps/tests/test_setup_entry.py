"""
Tests for integration setup and unload in __init__.py.
"""

from __future__ import annotations

import os
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

from homeassistant.exceptions import ConfigEntryAuthFailed, ConfigEntryNotReady

from custom_components.onestepgps import (
    PLATFORMS,
    async_remove_config_entry_device,
    async_setup_entry,
    async_unload_entry,
)
from custom_components.onestepgps.const import API_KEY_ENV

COORDINATOR_PATH = "custom_components.onestepgps.OneStepGpsCoordinator"
STORE_PATH = "custom_components.onestepgps.PreferenceStore"


def _make_hass() -> MagicMock:
    hass = MagicMock()
    hass.config_entries.async_forward_entry_setups = AsyncMock(return_value=True)
    hass.config_entries.async_unload_platforms = AsyncMock(return_value=True)
    return hass


def _make_entry(data=None) -> MagicMock:
    entry = MagicMock()
    entry.entry_id = "entry-1"
    entry.data = {"entry_name": "Fleet", "api_key": "k3y"} if data is None else data
    return entry


def _make_coordinator_mock() -> MagicMock:
    coordinator = MagicMock()
    coordinator.async_config_entry_first_refresh = AsyncMock()
    coordinator.async_shutdown = AsyncMock()
    return coordinator


class TestSetupEntry(unittest.IsolatedAsyncioTestCase):

    async def test_setup_builds_coordinator_and_forwards_platforms(self):
        hass = _make_hass()
        entry = _make_entry()
        coordinator = _make_coordinator_mock()

        with patch(COORDINATOR_PATH, return_value=coordinator) as coord_cls, \
                patch(STORE_PATH) as store_cls:
            self.assertTrue(await async_setup_entry(hass, entry))

        store_cls.assert_called_once_with(hass, "onestepgps.user_preferences.entry-1")
        coord_cls.assert_called_once_with(hass, "k3y", store_cls.return_value, config_entry=entry)
        coordinator.async_config_entry_first_refresh.assert_awaited_once()
        coordinator.async_start_auto_refresh.assert_called_once_with()
        entry.async_on_unload.assert_called_once_with(coordinator.async_stop_auto_refresh)
        self.assertIs(entry.runtime_data, coordinator)
        hass.config_entries.async_forward_entry_setups.assert_awaited_once_with(entry, PLATFORMS)

    async def test_api_key_falls_back_to_environment(self):
        hass = _make_hass()
        entry = _make_entry({"entry_name": "Fleet"})

        with patch(COORDINATOR_PATH, return_value=_make_coordinator_mock()) as coord_cls, \
                patch(STORE_PATH), \
                patch.dict(os.environ, {API_KEY_ENV: "env-key"}):
            await async_setup_entry(hass, entry)

        self.assertEqual(coord_cls.call_args.args[1], "env-key")

    async def test_missing_api_key_raises_auth_failed(self):
        hass = _make_hass()
        entry = _make_entry({"entry_name": "Fleet"})

        with patch(COORDINATOR_PATH) as coord_cls, patch(STORE_PATH), \
                patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(ConfigEntryAuthFailed):
                await async_setup_entry(hass, entry)

        coord_cls.assert_not_called()

    async def test_first_refresh_failure_propagates(self):
        hass = _make_hass()
        entry = _make_entry()
        coordinator = _make_coordinator_mock()
        coordinator.async_config_entry_first_refresh = AsyncMock(side_effect=ConfigEntryNotReady("down"))

        with patch(COORDINATOR_PATH, return_value=coordinator), patch(STORE_PATH):
            with self.assertRaises(ConfigEntryNotReady):
                await async_setup_entry(hass, entry)

        coordinator.async_start_auto_refresh.assert_not_called()
        hass.config_entries.async_forward_entry_setups.assert_not_awaited()


class TestUnloadEntry(unittest.IsolatedAsyncioTestCase):

    async def test_unload_shuts_down_coordinator(self):
        hass = _make_hass()
        entry = _make_entry()
        entry.runtime_data = _make_coordinator_mock()

        self.assertTrue(await async_unload_entry(hass, entry))

        hass.config_entries.async_unload_platforms.assert_awaited_once_with(entry, PLATFORMS)
        entry.runtime_data.async_shutdown.assert_awaited_once()

    async def test_failed_unload_keeps_coordinator_running(self):
        hass = _make_hass()
        hass.config_entries.async_unload_platforms = AsyncMock(return_value=False)
        entry = _make_entry()
        entry.runtime_data = _make_coordinator_mock()

        self.assertFalse(await async_unload_entry(hass, entry))

        entry.runtime_data.async_shutdown.assert_not_awaited()

    async def test_devices_can_be_removed(self):
        self.assertTrue(await async_remove_config_entry_device(MagicMock(), MagicMock(), MagicMock()))
