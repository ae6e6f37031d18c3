"""
Tests for FleetData snapshots and the displayed-devices projection
(hide filter, sort orders, search).
"""

from __future__ import annotations

import dataclasses
import unittest
from datetime import datetime, timedelta, timezone

from custom_components.onestepgps.coordinator_data import FleetData, FleetState
from custom_components.onestepgps.models import DriveStatus
from custom_components.onestepgps.preferences import SortOrder, UserPreferences

from .test_common import make_device

BASE_TIME = datetime(2025, 4, 20, 10, 0, tzinfo=timezone.utc)


def _fleet(**pref_kwargs) -> FleetData:
    devices = (
        make_device("c", name="Charlie", drive_status=DriveStatus.IDLE, last_updated=BASE_TIME),
        make_device("a", name="Alpha", drive_status=DriveStatus.PARKED, last_updated=BASE_TIME - timedelta(hours=2)),
        make_device("d", name="Delta", drive_status=DriveStatus.DRIVING, last_updated=BASE_TIME + timedelta(minutes=5)),
        make_device("b", name="Bravo", drive_status=DriveStatus.OFF, last_updated=BASE_TIME - timedelta(minutes=1)),
        make_device("e", name="Echo", drive_status=DriveStatus.UNKNOWN, last_updated=BASE_TIME - timedelta(days=1)),
    )
    return FleetData(devices=devices, preferences=UserPreferences(**pref_kwargs))


class TestFleetDataSnapshot(unittest.TestCase):

    def test_default_snapshot_is_empty(self):
        data = FleetData()
        self.assertEqual(data.devices, ())
        self.assertEqual(data.preferences, UserPreferences())
        self.assertIs(data.state, FleetState.IDLE)
        self.assertIsNone(data.error)
        self.assertIsNone(data.last_fetch)
        self.assertEqual(data.displayed_devices(), [])

    def test_snapshot_is_frozen(self):
        data = FleetData()
        with self.assertRaises(dataclasses.FrozenInstanceError):
            data.state = FleetState.READY

    def test_replace_leaves_original_untouched(self):
        original = FleetData()
        updated = dataclasses.replace(original, state=FleetState.LOADING)
        self.assertIs(original.state, FleetState.IDLE)
        self.assertTrue(updated.is_loading)

    def test_snapshot_is_hashable(self):
        data = _fleet(custom_device_icons={"a": "mdi:truck"})
        self.assertEqual(hash(data), hash(dataclasses.replace(data)))

    def test_get_device(self):
        data = _fleet()
        self.assertEqual(data.get_device("d").name, "Delta")
        self.assertIsNone(data.get_device("zzz"))


class TestDisplayedDevices(unittest.TestCase):

    def test_sort_by_name(self):
        ids = [d.id for d in _fleet(sort_order=SortOrder.BY_NAME).displayed_devices()]
        self.assertEqual(ids, ["a", "b", "c", "d", "e"])

    def test_sort_by_status_is_alphabetic(self):
        names = [d.drive_status.value for d in _fleet(sort_order=SortOrder.BY_STATUS).displayed_devices()]
        self.assertEqual(names, ["driving", "idle", "off", "parked", "unknown"])

    def test_sort_by_recent_update_is_descending(self):
        ids = [d.id for d in _fleet(sort_order=SortOrder.BY_RECENT_UPDATE).displayed_devices()]
        self.assertEqual(ids, ["d", "c", "b", "a", "e"])

    def test_recent_update_sorts_naive_with_aware(self):
        data = FleetData(
            devices=(
                make_device("naive", last_updated=datetime(2025, 4, 20, 11, 0)),
                make_device("aware", last_updated=BASE_TIME),
            ),
            preferences=UserPreferences(sort_order=SortOrder.BY_RECENT_UPDATE),
        )
        self.assertEqual([d.id for d in data.displayed_devices()], ["naive", "aware"])

    def test_ties_keep_fetch_order(self):
        devices = tuple(make_device(i, name="Same") for i in ("z", "y", "x"))
        data = FleetData(devices=devices)
        self.assertEqual([d.id for d in data.displayed_devices()], ["z", "y", "x"])

    def test_hidden_devices_never_displayed(self):
        for order in SortOrder:
            data = _fleet(sort_order=order, hidden_device_ids=frozenset({"a", "d"}))
            ids = {d.id for d in data.displayed_devices()}
            self.assertEqual(ids, {"b", "c", "e"}, order)

    def test_hidden_id_not_in_fleet_is_ignored(self):
        data = _fleet(hidden_device_ids=frozenset({"ghost"}))
        self.assertEqual(len(data.displayed_devices()), 5)

    def test_all_hidden(self):
        data = _fleet(hidden_device_ids=frozenset("abcde"))
        self.assertEqual(data.displayed_devices(), [])


class TestSearchDevices(unittest.TestCase):

    def test_empty_search_returns_displayed(self):
        data = _fleet()
        self.assertEqual(data.search_devices("  "), data.displayed_devices())

    def test_matches_name_case_insensitive(self):
        self.assertEqual([d.id for d in _fleet().search_devices("ALPHA")], ["a"])

    def test_matches_id(self):
        data = FleetData(devices=(
            make_device("VAN-12", name="Service"),
            make_device("TRK-4", name="Box"),
        ))
        self.assertEqual([d.id for d in data.search_devices("van-1")], ["VAN-12"])

    def test_matches_status(self):
        self.assertEqual([d.id for d in _fleet().search_devices("driv")], ["d"])

    def test_hidden_devices_not_searchable(self):
        data = _fleet(hidden_device_ids=frozenset({"a"}))
        self.assertEqual(data.search_devices("alpha"), [])
