"""CSV table parsing shared by the directory and zip GTFS repositories.

Rows that cannot be parsed are skipped; only a missing required table is fatal.
"""

from __future__ import annotations

import csv
import io
import logging
from datetime import date, datetime
from typing import Callable, Iterator

from src.domain.algorithms.route_category import route_category
from src.domain.algorithms.schedule_index import build_store
from src.domain.algorithms.service_calendar import is_known_timezone
from src.domain.algorithms.shapes import build_shape_points
from src.domain.exceptions import MissingGtfsTableError, UnknownTimezoneError
from src.domain.models import (
    CalendarException,
    FrequencyWindow,
    GeoPoint,
    GtfsRoute,
    GtfsStore,
    GtfsTrip,
    ServiceCalendar,
    ShapePoint,
    Stop,
    StopTime,
)

logger = logging.getLogger(__name__)

REQUIRED_TABLES = ("routes.txt", "stops.txt", "trips.txt", "shapes.txt")
DEFAULT_TIMEZONE = "America/Los_Angeles"
_WEEKDAYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

# Returns the text of a table by file name, or None when the feed lacks it.
TableReader = Callable[[str], str | None]


def parse_gtfs_time(raw: str) -> int | None:
    # GTFS time can be HH:MM:SS with HH possibly > 24.
    parts = raw.strip().split(":")
    if len(parts) != 3:
        return None
    try:
        hh, mm, ss = (int(p) for p in parts)
    except ValueError:
        return None
    return hh * 3600 + mm * 60 + ss


def parse_gtfs_date(raw: str) -> date | None:
    try:
        return datetime.strptime(raw.strip(), "%Y%m%d").date()
    except ValueError:
        return None


def _rows(text: str) -> Iterator[dict[str, str]]:
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    for row in reader:
        yield {
            (k or "").strip(): (v or "").strip()
            for k, v in row.items()
            if isinstance(v, str)
        }


def parse_routes(text: str) -> list[GtfsRoute]:
    out: list[GtfsRoute] = []
    for row in _rows(text):
        route_id = row.get("route_id", "")
        if not route_id:
            continue
        short_name = row.get("route_short_name") or route_id
        color = row.get("route_color", "")
        out.append(
            GtfsRoute(
                route_id=route_id,
                short_name=short_name,
                long_name=row.get("route_long_name", ""),
                color=color or "FDB71A",
                text_color=row.get("route_text_color") or "000000",
                category=route_category(
                    short_name, color, row.get("route_type") or "3"
                ),
            )
        )
    return out


def parse_stops(text: str) -> dict[str, Stop]:
    stops: dict[str, Stop] = {}
    for row in _rows(text):
        stop_id = row.get("stop_id", "")
        if not stop_id:
            continue
        try:
            location = GeoPoint(lat=float(row["stop_lat"]), lon=float(row["stop_lon"]))
        except (KeyError, ValueError):
            continue
        stops[stop_id] = Stop(
            id=stop_id, name=row.get("stop_name", ""), location=location
        )
    return stops


def parse_trips(text: str) -> list[GtfsTrip]:
    out: list[GtfsTrip] = []
    for row in _rows(text):
        trip_id = row.get("trip_id", "")
        route_id = row.get("route_id", "")
        if not trip_id or not route_id:
            continue
        try:
            direction_id = 1 if int(row.get("direction_id") or 0) == 1 else 0
        except ValueError:
            direction_id = 0
        out.append(
            GtfsTrip(
                trip_id=trip_id,
                route_id=route_id,
                direction_id=direction_id,
                shape_id=row.get("shape_id") or None,
                service_id=row.get("service_id") or None,
                headsign=row.get("trip_headsign", ""),
            )
        )
    return out


def parse_shapes(text: str) -> dict[str, tuple[ShapePoint, ...]]:
    raw: dict[str, list[tuple[int, float, float]]] = {}
    for row in _rows(text):
        shape_id = row.get("shape_id", "")
        if not shape_id:
            continue
        try:
            seq = int(row.get("shape_pt_sequence") or 0)
            lat = float(row["shape_pt_lat"])
            lon = float(row["shape_pt_lon"])
        except (KeyError, ValueError):
            continue
        raw.setdefault(shape_id, []).append((seq, lat, lon))

    return {shape_id: build_shape_points(pts) for shape_id, pts in raw.items()}


def parse_first_stop_times(text: str) -> dict[str, StopTime]:
    """Keep only the lowest stop_sequence row of every trip."""

    first: dict[str, StopTime] = {}
    for row in _rows(text):
        trip_id = row.get("trip_id", "")
        if not trip_id:
            continue
        try:
            seq = int(row.get("stop_sequence") or 0)
        except ValueError:
            continue
        existing = first.get(trip_id)
        if existing is not None and existing.stop_sequence <= seq:
            continue

        arr_s = parse_gtfs_time(row.get("arrival_time", ""))
        dep_s = parse_gtfs_time(row.get("departure_time", ""))
        if dep_s is None:
            dep_s = arr_s
        if dep_s is None:
            continue

        first[trip_id] = StopTime(
            trip_id=trip_id,
            stop_id=row.get("stop_id", ""),
            stop_sequence=seq,
            arrival_time_s=arr_s if arr_s is not None else dep_s,
            departure_time_s=dep_s,
        )
    return first


def parse_frequencies(text: str) -> list[FrequencyWindow]:
    out: list[FrequencyWindow] = []
    for row in _rows(text):
        start_s = parse_gtfs_time(row.get("start_time", ""))
        end_s = parse_gtfs_time(row.get("end_time", ""))
        try:
            headway_s = int(row.get("headway_secs") or 0)
        except ValueError:
            continue
        if start_s is None or end_s is None or headway_s <= 0:
            continue
        out.append(
            FrequencyWindow(
                trip_id=row.get("trip_id", ""),
                start_time_s=start_s,
                end_time_s=end_s,
                headway_s=headway_s,
                exact_times=row.get("exact_times") == "1",
            )
        )
    return out


def parse_calendar(text: str) -> list[ServiceCalendar]:
    out: list[ServiceCalendar] = []
    for row in _rows(text):
        service_id = row.get("service_id", "")
        start = parse_gtfs_date(row.get("start_date", ""))
        end = parse_gtfs_date(row.get("end_date", ""))
        if not service_id or start is None or end is None:
            continue
        weekdays = tuple(row.get(day) == "1" for day in _WEEKDAYS)
        out.append(
            ServiceCalendar(
                service_id=service_id,
                weekdays=weekdays,  # type: ignore[arg-type]
                start_date=start,
                end_date=end,
            )
        )
    return out


def parse_calendar_dates(text: str) -> list[CalendarException]:
    out: list[CalendarException] = []
    for row in _rows(text):
        service_id = row.get("service_id", "")
        day = parse_gtfs_date(row.get("date", ""))
        if not service_id or day is None:
            continue
        try:
            exception_type = int(row.get("exception_type") or 1)
        except ValueError:
            continue
        if exception_type not in (1, 2):
            continue
        out.append(
            CalendarException(
                service_id=service_id, date=day, exception_type=exception_type
            )
        )
    return out


def parse_agency_timezone(text: str) -> str | None:
    for row in _rows(text):
        tz = row.get("agency_timezone")
        if tz:
            return tz
    return None


def load_store_from_tables(
    read_table: TableReader, *, timezone: str | None = None
) -> GtfsStore:
    """Parse every table the headway pipeline needs and build the store.

    Raises MissingGtfsTableError if a required table is absent and
    UnknownTimezoneError for an explicit timezone that is not an IANA zone.
    Optional tables degrade to empty indexes. An unusable agency_timezone
    falls back to the default zone.
    """

    if timezone is not None and not is_known_timezone(timezone):
        raise UnknownTimezoneError(timezone)

    required: dict[str, str] = {}
    for name in REQUIRED_TABLES:
        text = read_table(name)
        if text is None:
            raise MissingGtfsTableError(name)
        required[name] = text

    routes = parse_routes(required["routes.txt"])
    stops = parse_stops(required["stops.txt"])
    trips = parse_trips(required["trips.txt"])
    shapes = parse_shapes(required["shapes.txt"])

    stop_times_text = read_table("stop_times.txt")
    frequencies_text = read_table("frequencies.txt")
    calendar_text = read_table("calendar.txt")
    calendar_dates_text = read_table("calendar_dates.txt")

    first_stop_times = parse_first_stop_times(stop_times_text) if stop_times_text else {}
    frequencies = parse_frequencies(frequencies_text) if frequencies_text else []
    calendars = parse_calendar(calendar_text) if calendar_text else []
    calendar_dates = (
        parse_calendar_dates(calendar_dates_text) if calendar_dates_text else []
    )

    if timezone is None:
        agency_text = read_table("agency.txt")
        timezone = parse_agency_timezone(agency_text) if agency_text else None
        if timezone is not None and not is_known_timezone(timezone):
            logger.warning(
                "agency_timezone %r is not a known zone; using %s",
                timezone,
                DEFAULT_TIMEZONE,
            )
            timezone = None
        timezone = timezone or DEFAULT_TIMEZONE

    logger.info(
        "Parsed %d routes, %d stops, %d trips, %d shapes, "
        "%d calendar entries, %d calendar exceptions",
        len(routes),
        len(stops),
        len(trips),
        len(shapes),
        len(calendars),
        len(calendar_dates),
    )

    store = build_store(
        routes=routes,
        stops_by_id=stops,
        trips=trips,
        shapes_by_id=shapes,
        first_stop_times=first_stop_times,
        frequencies=frequencies,
        calendars=calendars,
        calendar_exceptions=calendar_dates,
        timezone=timezone,
    )

    logger.info(
        "Frequency index: %d route+dirs | Route departures: %d route+dir+service keys"
        " | First stops: %d route+dirs",
        len(store.frequencies_by_route),
        len(store.departures_by_service),
        len(store.first_stops_by_route),
    )
    return store
