"""Tolerant decoding of GTFS-Realtime feeds into raw domain records.

Both the JSON rendering and the protobuf wire format end up as plain dicts
(protobuf via MessageToDict), so a single parser handles either. Any field
may be missing or mistyped; such fields become None.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Mapping

from google.protobuf.json_format import MessageToDict
from google.protobuf.message import DecodeError
from google.transit import gtfs_realtime_pb2

from src.domain.exceptions import RealtimeFeedError
from src.domain.models import (
    RawStopTimeUpdate,
    RawTripUpdate,
    RawVehiclePosition,
)

# VehicleStopStatus enum values, for feeds that render enums as integers.
_STOP_STATUS_BY_NUMBER = {0: "INCOMING_AT", 1: "STOPPED_AT", 2: "IN_TRANSIT_TO"}


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _epoch(value: Any) -> datetime | None:
    seconds = _int(value)
    if seconds is None or seconds <= 0:
        return None
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def _stop_status(value: Any) -> str | None:
    number = _int(value)
    if number is not None:
        return _STOP_STATUS_BY_NUMBER.get(number)
    return _str(value)


def decode_feed(
    content: bytes, *, content_type: str = "", feed_format: str = "auto"
) -> list[Mapping[str, Any]]:
    """Return the feed's entity list as dicts."""

    fmt = (feed_format or "auto").strip().lower()
    if fmt == "auto":
        looks_json = "json" in content_type.lower() or content.lstrip()[:1] == b"{"
        fmt = "json" if looks_json else "protobuf"

    if fmt == "json":
        try:
            data = json.loads(content)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise RealtimeFeedError(f"Malformed GTFS-RT JSON: {exc}") from exc
    elif fmt == "protobuf":
        feed = gtfs_realtime_pb2.FeedMessage()
        try:
            feed.ParseFromString(content)
        except DecodeError as exc:
            raise RealtimeFeedError(f"Malformed GTFS-RT protobuf: {exc}") from exc
        data = MessageToDict(feed, preserving_proto_field_name=True)
    else:
        raise RealtimeFeedError(f"Unsupported GTFS-RT format: {feed_format}")

    if not isinstance(data, Mapping):
        raise RealtimeFeedError("GTFS-RT payload is not an object")
    entities = data.get("entity") or []
    if not isinstance(entities, list):
        raise RealtimeFeedError("GTFS-RT 'entity' is not a list")
    return [e for e in entities if isinstance(e, Mapping)]


def parse_vehicle_position(entity: Mapping[str, Any]) -> RawVehiclePosition | None:
    vp = entity.get("vehicle")
    if not isinstance(vp, Mapping):
        return None

    trip = _mapping(vp.get("trip"))
    descriptor = _mapping(vp.get("vehicle"))
    position = _mapping(vp.get("position"))

    return RawVehiclePosition(
        entity_id=_str(entity.get("id")),
        trip_id=_str(trip.get("trip_id")),
        route_id=_str(trip.get("route_id")),
        direction_id=_int(trip.get("direction_id")),
        vehicle_id=_str(descriptor.get("id")),
        vehicle_label=_str(descriptor.get("label")),
        lat=_float(position.get("latitude")),
        lon=_float(position.get("longitude")),
        current_stop_sequence=_int(vp.get("current_stop_sequence")),
        stop_id=_str(vp.get("stop_id")),
        current_status=_stop_status(vp.get("current_status")),
        timestamp=_epoch(vp.get("timestamp")),
    )


def _stop_time_update(raw: Mapping[str, Any]) -> RawStopTimeUpdate:
    arrival = _mapping(raw.get("arrival"))
    departure = _mapping(raw.get("departure"))
    return RawStopTimeUpdate(
        stop_sequence=_int(raw.get("stop_sequence")),
        stop_id=_str(raw.get("stop_id")),
        arrival_time=_epoch(arrival.get("time")),
        arrival_delay_s=_int(arrival.get("delay")),
        departure_time=_epoch(departure.get("time")),
        departure_delay_s=_int(departure.get("delay")),
    )


def parse_trip_update(entity: Mapping[str, Any]) -> RawTripUpdate | None:
    tu = entity.get("trip_update")
    if not isinstance(tu, Mapping):
        return None

    trip = _mapping(tu.get("trip"))
    updates = tu.get("stop_time_update") or []
    if not isinstance(updates, list):
        updates = []

    return RawTripUpdate(
        trip_id=_str(trip.get("trip_id")),
        route_id=_str(trip.get("route_id")),
        direction_id=_int(trip.get("direction_id")),
        stop_time_updates=tuple(
            _stop_time_update(u) for u in updates if isinstance(u, Mapping)
        ),
    )
