"""
Decoding rules for the OneStep GPS device endpoint.

Responsible for:
- Parsing the ISO-8601 timestamps the API emits
- Mapping the nested wire format of one device onto a Device instance
- Decoding a whole fleet envelope atomically: one bad device fails the batch

Each device is decoded in two passes. The strict pass reads the required
fields and raises DecodeError on the first problem. The tolerant pass reads
optional fields and turns anything missing or malformed into None.
"""
from __future__ import annotations

import logging
import re
from datetime import datetime

from custom_components.onestepgps.errors import DecodeError
from custom_components.onestepgps.models import Coordinate, Device, DriveStatus, SpeedInfo

_LOGGER = logging.getLogger(__name__)

# Internet date-time with and without fractional seconds; %z accepts "Z"
TIMESTAMP_FORMATS = ("%Y-%m-%dT%H:%M:%S.%f%z", "%Y-%m-%dT%H:%M:%S%z")

# strptime %f stops at microseconds; nanosecond stamps carry up to 9 digits
_EXTRA_FRACTION_DIGITS = re.compile(r"(\.\d{6})\d+")


def parse_timestamp(value) -> datetime:
    """Parse an API timestamp, trying fractional seconds first."""
    if not isinstance(value, str):
        raise DecodeError(f"Expected timestamp string, got {type(value).__name__}")
    text = _EXTRA_FRACTION_DIGITS.sub(r"\1", value, count=1)
    for fmt in TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise DecodeError(f"Invalid date format: {value}")


def format_timestamp(value: datetime) -> str:
    """Inverse of parse_timestamp, always with millisecond precision."""
    text = value.isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _require(container: dict, key: str, kind, path: str):
    if not isinstance(container, dict) or key not in container:
        raise DecodeError(f"Missing required field '{path}{key}'")
    value = container[key]
    if kind is float:
        if not _is_number(value):
            raise DecodeError(f"Field '{path}{key}' is not a number: {value!r}")
        return float(value)
    if not isinstance(value, kind):
        raise DecodeError(f"Field '{path}{key}' has wrong type: {value!r}")
    return value


def _decode_required(raw: dict) -> dict:
    """Strict pass: every value here is mandatory."""
    if not isinstance(raw, dict):
        raise DecodeError(f"Device entry is not an object: {raw!r}")

    point = _require(raw, "latest_accurate_device_point", dict, "")
    _require(point, "device_point_detail", dict, "latest_accurate_device_point.")
    state = _require(point, "device_state", dict, "latest_accurate_device_point.")
    status = _require(state, "drive_status", str, "latest_accurate_device_point.device_state.")

    return dict(
        id=_require(raw, "device_id", str, ""),
        name=_require(raw, "display_name", str, ""),
        make=_require(raw, "make", str, ""),
        model=_require(raw, "model", str, ""),
        last_updated=parse_timestamp(_require(raw, "updated_at", str, "")),
        is_online=_require(raw, "online", bool, ""),
        factory_id=_require(raw, "factory_id", str, ""),
        location=Coordinate(
            latitude=_require(point, "lat", float, "latest_accurate_device_point."),
            longitude=_require(point, "lng", float, "latest_accurate_device_point."),
        ),
        drive_status=DriveStatus(status),
    )


def _decode_activated_at(raw: dict) -> datetime | None:
    try:
        return parse_timestamp(raw.get("activated_at"))
    except DecodeError:
        return None


def _decode_voltage(detail: dict) -> float | None:
    value = detail.get("external_volt")
    return float(value) if _is_number(value) else None


def _decode_speed(detail: dict) -> SpeedInfo | None:
    speed = detail.get("speed")
    if not isinstance(speed, dict):
        return None
    value, unit, display = speed.get("value"), speed.get("unit"), speed.get("display")
    if not _is_number(value) or not isinstance(unit, str) or not isinstance(display, str):
        return None
    return SpeedInfo(value=float(value), unit=unit, display=display)


def _decode_optional(raw: dict) -> dict:
    """Tolerant pass: failures become None and never propagate."""
    detail = raw["latest_accurate_device_point"]["device_point_detail"]
    return dict(
        activated_at=_decode_activated_at(raw),
        battery_voltage=_decode_voltage(detail),
        current_speed=_decode_speed(detail),
    )


def decode_device(raw: dict) -> Device:
    """Map a single raw API device dict onto a Device instance."""
    required = _decode_required(raw)
    return Device(**required, **_decode_optional(raw))


def decode_fleet(payload) -> list[Device]:
    """
    Decode the {"result_list": [...]} envelope.

    All-or-nothing: if any device fails the strict pass, DecodeError is raised
    for the whole batch and no devices are returned.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("result_list"), list):
        raise DecodeError("Response is not a result_list envelope")

    devices = []
    for index, raw in enumerate(payload["result_list"]):
        try:
            devices.append(decode_device(raw))
        except DecodeError as e:
            device_id = raw.get("device_id") if isinstance(raw, dict) else None
            raise DecodeError(f"Device #{index} ({device_id}): {e}") from e
    return devices


def encode_device(device: Device) -> dict:
    """Produce the wire representation of a device (used for fixtures)."""
    detail = {}
    if device.battery_voltage is not None:
        detail["external_volt"] = device.battery_voltage
    if device.current_speed is not None:
        detail["speed"] = {
            "value": device.current_speed.value,
            "unit": device.current_speed.unit,
            "display": device.current_speed.display,
        }

    raw = {
        "device_id": device.id,
        "display_name": device.name,
        "make": device.make,
        "model": device.model,
        "updated_at": format_timestamp(device.last_updated),
        "online": device.is_online,
        "factory_id": device.factory_id,
        "latest_accurate_device_point": {
            "lat": device.location.latitude if device.location else None,
            "lng": device.location.longitude if device.location else None,
            "device_point_detail": detail,
            "device_state": {"drive_status": device.drive_status.value},
        },
    }
    if device.activated_at is not None:
        raw["activated_at"] = format_timestamp(device.activated_at)
    return raw
