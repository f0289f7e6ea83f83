from __future__ import annotations

from typing import Iterable, Mapping

from src.domain.algorithms.shapes import canonical_shape_ids
from src.domain.models import (
    CalendarException,
    FrequencyWindow,
    GtfsRoute,
    GtfsStore,
    GtfsTrip,
    RouteDirection,
    ServiceCalendar,
    ShapePoint,
    Stop,
    StopTime,
)


def group_trips_by_route(
    trips: Iterable[GtfsTrip],
) -> dict[RouteDirection, tuple[GtfsTrip, ...]]:
    grouped: dict[RouteDirection, list[GtfsTrip]] = {}
    for trip in trips:
        grouped.setdefault(trip.route_direction, []).append(trip)
    return {k: tuple(v) for k, v in grouped.items()}


def build_frequency_index(
    frequencies: Iterable[FrequencyWindow], trips_by_id: Mapping[str, GtfsTrip]
) -> dict[RouteDirection, tuple[FrequencyWindow, ...]]:
    index: dict[RouteDirection, list[FrequencyWindow]] = {}
    for fw in frequencies:
        trip = trips_by_id.get(fw.trip_id)
        if trip is None:
            continue
        index.setdefault(trip.route_direction, []).append(fw)

    return {
        k: tuple(sorted(v, key=lambda w: w.start_time_s)) for k, v in index.items()
    }


def build_route_departures(
    first_stop_times: Mapping[str, StopTime], trips: Iterable[GtfsTrip]
) -> dict[tuple[RouteDirection, str], tuple[int, ...]]:
    """Sorted first-stop departure times per route+direction+service."""

    out: dict[tuple[RouteDirection, str], list[int]] = {}
    for trip in trips:
        first = first_stop_times.get(trip.trip_id)
        if first is None:
            continue
        key = (trip.route_direction, trip.service_id or "")
        out.setdefault(key, []).append(first.departure_time_s)
    return {k: tuple(sorted(v)) for k, v in out.items()}


def build_first_stops_index(
    first_stop_times: Mapping[str, StopTime], trips: Iterable[GtfsTrip]
) -> dict[RouteDirection, frozenset[str]]:
    out: dict[RouteDirection, set[str]] = {}
    for trip in trips:
        first = first_stop_times.get(trip.trip_id)
        if first is None or not first.stop_id:
            continue
        out.setdefault(trip.route_direction, set()).add(first.stop_id)
    return {k: frozenset(v) for k, v in out.items()}


def build_store(
    *,
    routes: Iterable[GtfsRoute],
    stops_by_id: dict[str, Stop],
    trips: Iterable[GtfsTrip],
    shapes_by_id: dict[str, tuple[ShapePoint, ...]],
    first_stop_times: Mapping[str, StopTime] | None = None,
    frequencies: Iterable[FrequencyWindow] = (),
    calendars: Iterable[ServiceCalendar] = (),
    calendar_exceptions: Iterable[CalendarException] = (),
    timezone: str = "America/Los_Angeles",
) -> GtfsStore:
    """Assemble the read-only store and all of its derived indexes."""

    trip_list = list(trips)
    trips_by_id = {t.trip_id: t for t in trip_list}
    first = first_stop_times or {}

    return GtfsStore(
        routes_by_id={r.route_id: r for r in routes},
        stops_by_id=stops_by_id,
        trips_by_id=trips_by_id,
        shapes_by_id=shapes_by_id,
        timezone=timezone,
        trips_by_route=group_trips_by_route(trip_list),
        shape_id_by_route=canonical_shape_ids(trip_list),
        frequencies_by_route=build_frequency_index(frequencies, trips_by_id),
        departures_by_service=build_route_departures(first, trip_list),
        first_stops_by_route=build_first_stops_index(first, trip_list),
        calendars=tuple(calendars),
        calendar_exceptions=tuple(calendar_exceptions),
    )
