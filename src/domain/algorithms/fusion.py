from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Iterable

from src.domain.algorithms.shapes import snap_to_shape
from src.domain.models import (
    GtfsStore,
    OnwardCall,
    ProgressState,
    RawStopTimeUpdate,
    RawTripUpdate,
    RawVehiclePosition,
    RouteDirection,
    Vehicle,
    is_usable_fix,
)

logger = logging.getLogger(__name__)

STOPPED_AT = "STOPPED_AT"


@dataclass(frozen=True, slots=True)
class FusionResult:
    vehicles: tuple[Vehicle, ...] = ()
    onward_calls_by_vehicle: dict[str, tuple[OnwardCall, ...]] = field(
        default_factory=dict
    )


def _onward_call(stu: RawStopTimeUpdate, store: GtfsStore) -> OnwardCall | None:
    if not stu.stop_id:
        return None

    stop = store.stops_by_id.get(stu.stop_id)

    aimed_arrival = None
    if stu.arrival_time is not None and stu.arrival_delay_s is not None:
        aimed_arrival = stu.arrival_time - timedelta(seconds=stu.arrival_delay_s)
    aimed_departure = None
    if stu.departure_time is not None and stu.departure_delay_s is not None:
        aimed_departure = stu.departure_time - timedelta(seconds=stu.departure_delay_s)

    return OnwardCall(
        stop_id=stu.stop_id,
        stop_name=stop.name if stop is not None else "",
        stop_sequence=stu.stop_sequence,
        expected_arrival=stu.arrival_time,
        expected_departure=stu.departure_time,
        aimed_arrival=aimed_arrival,
        aimed_departure=aimed_departure,
    )


def fuse_vehicles(
    positions: Iterable[RawVehiclePosition],
    trip_updates: Iterable[RawTripUpdate],
    store: GtfsStore,
) -> FusionResult:
    """Join live positions with trip predictions into vehicles + onward calls.

    Positions without a usable coordinate, an identifier or a resolvable route
    are skipped. Stop-time updates behind the vehicle's current stop sequence
    are dropped; updates without a sequence are kept in feed order.
    """

    updates_by_trip: dict[str, RawTripUpdate] = {}
    for tu in trip_updates:
        if tu.trip_id:
            updates_by_trip[tu.trip_id] = tu

    vehicles: list[Vehicle] = []
    calls_by_vehicle: dict[str, tuple[OnwardCall, ...]] = {}
    skipped = 0

    for vp in positions:
        lat, lon = vp.lat, vp.lon
        if lat is None or lon is None or not is_usable_fix(lat, lon):
            skipped += 1
            continue

        vehicle_ref = vp.vehicle_id or vp.vehicle_label or vp.entity_id
        trip = store.trips_by_id.get(vp.trip_id) if vp.trip_id else None
        route_id = vp.route_id or (trip.route_id if trip is not None else None)
        if not vehicle_ref or not route_id:
            skipped += 1
            continue

        if vp.direction_id is not None:
            direction_id = int(vp.direction_id)
        elif trip is not None:
            direction_id = trip.direction_id
        else:
            direction_id = 0

        distance_m = 0.0
        bearing = 0.0
        shape = store.route_shape(RouteDirection(route_id, direction_id))
        if shape:
            snap = snap_to_shape(lat, lon, shape)
            distance_m = snap.distance_along_route_m
            bearing = snap.bearing

        current_seq = vp.current_stop_sequence or 0
        next_stop_id = vp.stop_id or None
        next_stop_name = ""
        expected_arrival = None
        aimed_arrival = None

        calls: list[OnwardCall] = []
        tu = updates_by_trip.get(vp.trip_id) if vp.trip_id else None
        if tu is not None:
            for stu in tu.stop_time_updates:
                if stu.stop_sequence is not None and stu.stop_sequence < current_seq:
                    continue
                call = _onward_call(stu, store)
                if call is None:
                    continue
                calls.append(call)

                if stu.stop_sequence == current_seq:
                    next_stop_id = call.stop_id
                    next_stop_name = call.stop_name
                    expected_arrival = call.expected_arrival
                    aimed_arrival = call.aimed_arrival

        if not next_stop_name and next_stop_id:
            stop = store.stops_by_id.get(next_stop_id)
            next_stop_name = stop.name if stop is not None else ""

        route = store.routes_by_id.get(route_id)
        progress = (
            ProgressState.LAYOVER
            if (vp.current_status or "").upper() == STOPPED_AT
            else ProgressState.NORMAL
        )

        vehicles.append(
            Vehicle(
                vehicle_ref=vehicle_ref,
                route_id=route_id,
                direction_id=direction_id,
                lat=lat,
                lon=lon,
                trip_id=vp.trip_id,
                route_short_name=route.short_name if route is not None else route_id,
                headsign=trip.headsign if trip is not None else "",
                next_stop_id=next_stop_id,
                next_stop_name=next_stop_name,
                expected_arrival_time=expected_arrival,
                aimed_arrival_time=aimed_arrival,
                distance_along_route_m=distance_m,
                bearing=bearing,
                progress=progress,
                timestamp=vp.timestamp,
            )
        )

        if calls:
            calls_by_vehicle[vehicle_ref] = tuple(calls)

    if skipped:
        logger.debug("Skipped %d vehicle positions with unusable data", skipped)

    return FusionResult(
        vehicles=tuple(vehicles), onward_calls_by_vehicle=calls_by_vehicle
    )
