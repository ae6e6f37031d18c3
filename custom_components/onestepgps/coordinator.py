"""
DataUpdateCoordinator for the OneStep GPS integration.

Responsibilities:
- Own the fleet snapshot (FleetData) and the user preferences for the
  lifetime of a config entry; entities only ever read snapshots.
- Run the fetch cycle: idle → loading → ready | failed. A failed fetch keeps
  the last good device collection.
- Drive auto-refresh on a cancellable fixed period.
- Discard the outcome of any fetch that a newer fetch has superseded.
- Apply preference changes, persist them, and push a new snapshot.
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
from datetime import datetime, timedelta
from typing import Callable

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.exceptions import ConfigEntryAuthFailed
from homeassistant.helpers.event import async_track_time_interval
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed
from homeassistant.util import dt as dt_util

from .api.devices import fetch_devices
from .const import (
    AUTH_FAILURE_STATUSES,
    DOMAIN,
    MAX_REFRESH_INTERVAL,
    MIN_REFRESH_INTERVAL,
    VERSION,
)
from .coordinator_data import FleetData, FleetState
from .errors import NetworkError, OneStepGpsError
from .models import Device
from .preferences import PreferenceStore, SortOrder, UserPreferences

__all__ = ["FleetData", "FleetState", "OneStepGpsCoordinator"]

_LOGGER = logging.getLogger(__name__)


class OneStepGpsCoordinator(DataUpdateCoordinator[FleetData]):
    """
    Coordinator for the OneStep GPS integration.

    All mutation happens on the event loop through this class; every change
    publishes a fresh FleetData and notifies listeners.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        api_key: str,
        preference_store: PreferenceStore,
        config_entry: ConfigEntry | None = None,
    ) -> None:
        """Initialize the coordinator."""
        super().__init__(
            hass,
            _LOGGER,
            config_entry=config_entry,
            name=DOMAIN,
            # Polling is driven by async_start_auto_refresh, not by HA's scheduler
            update_interval=None,
        )

        self._api_key = api_key
        self._preference_store = preference_store
        self._preferences_loaded: bool = False

        # Incremented by every fetch; only the newest may publish its outcome
        self._fetch_generation: int = 0

        # Auto-refresh timer state
        self._unsub_auto_refresh: Callable[[], None] | None = None
        self._auto_refresh_interval: float | None = None
        self._refresh_tasks: set[asyncio.Task] = set()

        self.data = FleetData()

    # ------------------------------------------------------------------
    # Snapshot helpers
    # ------------------------------------------------------------------

    @callback
    def _async_publish(self, data: FleetData) -> None:
        """Swap in a new snapshot and notify listeners."""
        self.data = data
        self.async_update_listeners()

    @property
    def displayed_devices(self) -> list[Device]:
        return self.data.displayed_devices()

    @property
    def preferences(self) -> UserPreferences:
        return self.data.preferences

    @property
    def auto_refresh_interval(self) -> float | None:
        """Current auto-refresh period in seconds, None when stopped."""
        return self._auto_refresh_interval

    # ------------------------------------------------------------------
    # HA entry point
    # ------------------------------------------------------------------

    async def _async_update_data(self) -> FleetData:
        """
        Called by HA for the first refresh and for manual refresh requests.

        Loads preferences once, then runs a normal fetch.
        """
        if not self._preferences_loaded:
            await self.async_load_preferences()

        try:
            await self.async_fetch()
        except NetworkError as exc:
            if exc.status in AUTH_FAILURE_STATUSES:
                raise ConfigEntryAuthFailed(f"OneStep GPS rejected the API key: {exc}") from exc
            raise UpdateFailed(f"OneStep GPS connection error: {exc}") from exc
        except OneStepGpsError as exc:
            raise UpdateFailed(f"OneStep GPS returned unexpected data: {exc}") from exc
        except Exception as exc:  # noqa: BLE001
            raise UpdateFailed(f"OneStep GPS fetch failed: {exc}") from exc

        return self.data

    async def async_load_preferences(self) -> UserPreferences:
        """Read persisted preferences into the snapshot."""
        preferences = await self._preference_store.async_load()
        self._preferences_loaded = True
        self._async_publish(dataclasses.replace(self.data, preferences=preferences))
        return preferences

    # ------------------------------------------------------------------
    # Fetch cycle
    # ------------------------------------------------------------------

    async def async_fetch(self) -> None:
        """
        Fetch the fleet and replace the device collection.

        On failure the previous devices stay in place, the error is recorded
        on the snapshot and then re-raised. A fetch overtaken by a newer one
        publishes nothing.
        """
        self._fetch_generation += 1
        generation = self._fetch_generation
        self._async_publish(dataclasses.replace(self.data, state=FleetState.LOADING))

        try:
            devices = await fetch_devices(self._api_key)
        except Exception as exc:  # noqa: BLE001
            if generation != self._fetch_generation:
                _LOGGER.debug("Dropping failure of superseded fetch #%s: %s", generation, exc)
                raise
            if isinstance(exc, OneStepGpsError):
                _LOGGER.warning("Failed to fetch devices: %s", exc)
            else:
                _LOGGER.exception("Unexpected error while fetching devices")
            self._async_publish(
                dataclasses.replace(self.data, state=FleetState.FAILED, error=exc)
            )
            raise

        if generation != self._fetch_generation:
            _LOGGER.debug("Dropping result of superseded fetch #%s", generation)
            return

        self._async_publish(
            dataclasses.replace(
                self.data,
                devices=tuple(devices),
                state=FleetState.READY,
                error=None,
                last_fetch=dt_util.utcnow(),
            )
        )

    # ------------------------------------------------------------------
    # Auto-refresh
    # ------------------------------------------------------------------

    @callback
    def async_start_auto_refresh(self, interval_seconds: float | None = None) -> None:
        """
        (Re)start periodic fetching.

        Without an argument the preferred refresh interval is used. A running
        timer is cancelled before the new one is scheduled.
        """
        if interval_seconds is None:
            interval_seconds = self.data.preferences.map_refresh_interval

        self.async_stop_auto_refresh()
        self._auto_refresh_interval = float(interval_seconds)
        self._unsub_auto_refresh = async_track_time_interval(
            self.hass,
            self._async_handle_refresh_tick,
            timedelta(seconds=interval_seconds),
        )
        _LOGGER.debug("Auto-refresh every %ss", interval_seconds)

    @callback
    def async_stop_auto_refresh(self) -> None:
        """Cancel the auto-refresh timer. Safe to call when none is running."""
        if self._unsub_auto_refresh is not None:
            self._unsub_auto_refresh()
            self._unsub_auto_refresh = None
        self._auto_refresh_interval = None

    @callback
    def _async_handle_refresh_tick(self, _now: datetime) -> None:
        """Timer callback: launch a fetch as a tracked background task."""
        if self._unsub_auto_refresh is None:
            return
        task = self.hass.async_create_task(self._async_auto_refresh())
        self._refresh_tasks.add(task)
        task.add_done_callback(self._refresh_tasks.discard)

    async def _async_auto_refresh(self) -> None:
        """Fetch and swallow errors so the timer keeps running."""
        try:
            await self.async_fetch()
        except Exception as exc:  # noqa: BLE001
            # Already recorded on the snapshot by async_fetch
            _LOGGER.debug("Auto-refresh fetch failed: %s", exc)

    # ------------------------------------------------------------------
    # Preferences write path
    # ------------------------------------------------------------------

    async def async_update_preferences(self, **changes) -> UserPreferences:
        """
        Replace preference fields, persist, and publish.

        Raises ValueError for a refresh interval outside the allowed range.
        A running auto-refresh is restarted when the interval changes.
        """
        if "map_refresh_interval" in changes:
            interval = float(changes["map_refresh_interval"])
            if not MIN_REFRESH_INTERVAL <= interval <= MAX_REFRESH_INTERVAL:
                raise ValueError(
                    f"Refresh interval must be between {MIN_REFRESH_INTERVAL:g} "
                    f"and {MAX_REFRESH_INTERVAL:g} seconds, got {interval:g}"
                )
            changes["map_refresh_interval"] = interval
        if "hidden_device_ids" in changes:
            changes["hidden_device_ids"] = frozenset(changes["hidden_device_ids"])
        if "sort_order" in changes:
            changes["sort_order"] = SortOrder(changes["sort_order"])

        old = self.data.preferences
        new = dataclasses.replace(old, **changes)
        self._async_publish(dataclasses.replace(self.data, preferences=new))
        await self._preference_store.async_save(new)

        if (
            new.map_refresh_interval != old.map_refresh_interval
            and self._unsub_auto_refresh is not None
        ):
            self.async_start_auto_refresh(new.map_refresh_interval)

        return new

    async def async_hide_device(self, device_id: str) -> None:
        hidden = self.data.preferences.hidden_device_ids | {device_id}
        await self.async_update_preferences(hidden_device_ids=hidden)

    async def async_unhide_device(self, device_id: str) -> None:
        hidden = self.data.preferences.hidden_device_ids - {device_id}
        await self.async_update_preferences(hidden_device_ids=hidden)

    async def async_set_sort_order(self, sort_order: SortOrder) -> None:
        await self.async_update_preferences(sort_order=sort_order)

    async def async_set_refresh_interval(self, seconds: float) -> None:
        await self.async_update_preferences(map_refresh_interval=seconds)

    async def async_set_device_icon(self, device_id: str, icon: str | None) -> None:
        """Set a custom icon for a device; None removes it."""
        icons = dict(self.data.preferences.custom_device_icons)
        if icon is None:
            icons.pop(device_id, None)
        else:
            icons[device_id] = icon
        await self.async_update_preferences(custom_device_icons=icons)

    # ------------------------------------------------------------------
    # Entity helper: device info dict
    # ------------------------------------------------------------------

    def get_device_info(self, device_id: str) -> dict | None:
        """Return the HA DeviceInfo dict for the given device_id."""
        device = self.data.get_device(device_id)
        if device is None:
            return None
        return {
            "identifiers": {(DOMAIN, device.id)},
            "name": device.name or f"OneStep GPS {device.id}",
            "manufacturer": device.make or "Unknown",
            "model": device.model or "Unknown",
            "serial_number": device.factory_id or None,
            "sw_version": VERSION,
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def async_shutdown(self) -> None:
        """Stop the timer and make sure nothing lands after teardown."""
        self.async_stop_auto_refresh()
        # Invalidate fetches that are still awaiting the network
        self._fetch_generation += 1
        for task in list(self._refresh_tasks):
            task.cancel()
        if self._refresh_tasks:
            await asyncio.gather(*self._refresh_tasks, return_exceptions=True)
        self._refresh_tasks.clear()
        await super().async_shutdown()
