"""
Domain models for the OneStep GPS integration.

This module contains pure data classes representing tracked devices.
These classes have no dependencies on HTTP, decoding, or Home Assistant internals.
"""
from __future__ import annotations

import dataclasses
import enum
import logging
from datetime import datetime, timezone

from .const import COORDINATE_TOLERANCE, KMH_TO_MPH

_LOGGER = logging.getLogger(__name__)


class DriveStatus(str, enum.Enum):
    """Coarse motion state reported by the device."""

    PARKED = "parked"
    OFF = "off"
    IDLE = "idle"
    DRIVING = "driving"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value):
        # Status is advisory; values we do not know about never fail decoding
        _LOGGER.debug("Unrecognised drive status %r, using 'unknown'", value)
        return cls.UNKNOWN


@dataclasses.dataclass(frozen=True)
class Coordinate:
    """Latitude/longitude pair in decimal degrees."""

    latitude: float
    longitude: float

    def is_close(self, other: Coordinate, tolerance: float = COORDINATE_TOLERANCE) -> bool:
        return (
            abs(self.latitude - other.latitude) < tolerance
            and abs(self.longitude - other.longitude) < tolerance
        )


@dataclasses.dataclass(frozen=True)
class SpeedInfo:
    """Speed reading as the API reports it, including its own display label."""

    value: float
    unit: str
    display: str

    @property
    def speed_in_mph(self) -> float:
        if self.unit.lower() == "km/h":
            return self.value * KMH_TO_MPH
        return self.value


@dataclasses.dataclass(frozen=True, eq=False)
class Device:
    """Representation of a single tracked vehicle or asset."""

    id: str
    name: str
    make: str
    model: str
    last_updated: datetime
    drive_status: DriveStatus
    is_online: bool
    factory_id: str
    location: Coordinate | None = None
    battery_voltage: float | None = None
    current_speed: SpeedInfo | None = None
    activated_at: datetime | None = None

    def __post_init__(self) -> None:
        # Naive timestamps are taken as UTC so every device sorts against every other
        for name in ("last_updated", "activated_at"):
            value = getattr(self, name)
            if value is not None and value.tzinfo is None:
                object.__setattr__(self, name, value.replace(tzinfo=timezone.utc))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Device):
            return NotImplemented

        if self.location is not None and other.location is not None:
            locations_equal = self.location.is_close(other.location)
        else:
            locations_equal = self.location is None and other.location is None

        return (
            locations_equal
            and self.id == other.id
            and self.name == other.name
            and self.make == other.make
            and self.model == other.model
            and self.last_updated == other.last_updated
            and self.battery_voltage == other.battery_voltage
            and self.current_speed == other.current_speed
            and self.drive_status == other.drive_status
            and self.is_online == other.is_online
            and self.factory_id == other.factory_id
            and self.activated_at == other.activated_at
        )

    def __hash__(self) -> int:
        # Coordinates compare with a tolerance, so only the id can feed the hash
        return hash(self.id)
