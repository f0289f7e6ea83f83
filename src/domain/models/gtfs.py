from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from .geo import GeoPoint


class RouteCategory(str, Enum):
    """UI grouping for routes; derived from routes.txt, never from live data."""

    RAPID_RIDE = "RapidRide"
    LOCAL = "Local"
    EXPRESS = "Express"
    COMMUNITY = "Community"
    STREETCAR = "Streetcar"
    FERRY = "Ferry"


@dataclass(frozen=True, slots=True)
class Stop:
    id: str
    name: str
    location: GeoPoint


@dataclass(frozen=True, slots=True)
class RouteDirection:
    """Composite key for one direction of one route."""

    route_id: str
    direction_id: int


@dataclass(frozen=True, slots=True)
class GtfsRoute:
    route_id: str
    short_name: str
    long_name: str = ""
    color: str = "FDB71A"  # hex without '#'
    text_color: str = "000000"  # hex without '#'
    category: RouteCategory = RouteCategory.LOCAL


@dataclass(frozen=True, slots=True)
class GtfsTrip:
    trip_id: str
    route_id: str
    direction_id: int = 0
    shape_id: str | None = None
    service_id: str | None = None
    headsign: str = ""

    @property
    def route_direction(self) -> RouteDirection:
        return RouteDirection(self.route_id, self.direction_id)


@dataclass(frozen=True, slots=True)
class ShapePoint:
    lat: float
    lon: float
    sequence: int
    cumulative_distance_m: float


@dataclass(frozen=True, slots=True)
class StopTime:
    """A trip's first scheduled stop visit.

    Times are seconds since service day midnight (GTFS time semantics; may exceed 24h).
    """

    trip_id: str
    stop_id: str
    stop_sequence: int
    arrival_time_s: int
    departure_time_s: int


@dataclass(frozen=True, slots=True)
class FrequencyWindow:
    trip_id: str
    start_time_s: int
    end_time_s: int
    headway_s: int
    exact_times: bool = False

    def contains(self, time_s: int) -> bool:
        return self.start_time_s <= time_s < self.end_time_s


@dataclass(frozen=True, slots=True)
class ServiceCalendar:
    """Weekly pattern for one service_id.

    `weekdays` is indexed like `date.weekday()` (Monday == 0).
    """

    service_id: str
    weekdays: tuple[bool, bool, bool, bool, bool, bool, bool]
    start_date: date
    end_date: date

    def runs_on(self, day: date) -> bool:
        if day < self.start_date or day > self.end_date:
            return False
        return self.weekdays[day.weekday()]


@dataclass(frozen=True, slots=True)
class CalendarException:
    service_id: str
    date: date
    exception_type: int  # 1 = service added, 2 = service removed

    @property
    def is_addition(self) -> bool:
        return self.exception_type == 1


@dataclass(frozen=True, slots=True)
class GtfsStore:
    """Read-only static schedule indexes shared by every poll cycle."""

    routes_by_id: dict[str, GtfsRoute]
    stops_by_id: dict[str, Stop]
    trips_by_id: dict[str, GtfsTrip]
    shapes_by_id: dict[str, tuple[ShapePoint, ...]]
    timezone: str = "America/Los_Angeles"
    trips_by_route: dict[RouteDirection, tuple[GtfsTrip, ...]] = field(
        default_factory=dict
    )
    shape_id_by_route: dict[RouteDirection, str] = field(default_factory=dict)
    frequencies_by_route: dict[RouteDirection, tuple[FrequencyWindow, ...]] = field(
        default_factory=dict
    )
    departures_by_service: dict[tuple[RouteDirection, str], tuple[int, ...]] = field(
        default_factory=dict
    )
    first_stops_by_route: dict[RouteDirection, frozenset[str]] = field(
        default_factory=dict
    )
    calendars: tuple[ServiceCalendar, ...] = ()
    calendar_exceptions: tuple[CalendarException, ...] = ()

    def route_shape(self, key: RouteDirection) -> tuple[ShapePoint, ...] | None:
        shape_id = self.shape_id_by_route.get(key)
        if shape_id is None:
            return None
        return self.shapes_by_id.get(shape_id)

    def is_first_stop(self, key: RouteDirection, stop_id: str | None) -> bool:
        if not stop_id:
            return False
        return stop_id in self.first_stops_by_route.get(key, frozenset())
