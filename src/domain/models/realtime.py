from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


@dataclass(frozen=True, slots=True)
class RawVehiclePosition:
    """One VehiclePosition entity as published upstream.

    Every field may be missing; fusion decides what is usable.
    """

    entity_id: str | None = None
    trip_id: str | None = None
    route_id: str | None = None
    direction_id: int | None = None
    vehicle_id: str | None = None
    vehicle_label: str | None = None
    lat: float | None = None
    lon: float | None = None
    current_stop_sequence: int | None = None
    stop_id: str | None = None
    current_status: str | None = None
    timestamp: datetime | None = None


@dataclass(frozen=True, slots=True)
class RawStopTimeUpdate:
    stop_sequence: int | None = None
    stop_id: str | None = None
    arrival_time: datetime | None = None
    arrival_delay_s: int | None = None
    departure_time: datetime | None = None
    departure_delay_s: int | None = None


@dataclass(frozen=True, slots=True)
class RawTripUpdate:
    trip_id: str | None = None
    route_id: str | None = None
    direction_id: int | None = None
    stop_time_updates: tuple[RawStopTimeUpdate, ...] = ()


class ProgressState(str, Enum):
    NORMAL = "normalProgress"
    LAYOVER = "layover"


@dataclass(frozen=True, slots=True)
class OnwardCall:
    """A predicted upcoming stop visit for a vehicle's current trip."""

    stop_id: str
    stop_name: str = ""
    stop_sequence: int | None = None
    expected_arrival: datetime | None = None
    expected_departure: datetime | None = None
    aimed_arrival: datetime | None = None
    aimed_departure: datetime | None = None

    @property
    def eta(self) -> datetime | None:
        return self.expected_arrival or self.aimed_arrival


@dataclass(frozen=True, slots=True)
class Vehicle:
    vehicle_ref: str
    route_id: str
    direction_id: int
    lat: float
    lon: float
    trip_id: str | None = None
    route_short_name: str = ""
    headsign: str = ""
    next_stop_id: str | None = None
    next_stop_name: str = ""
    expected_arrival_time: datetime | None = None
    aimed_arrival_time: datetime | None = None
    distance_along_route_m: float = 0.0
    bearing: float = 0.0
    progress: ProgressState = ProgressState.NORMAL
    timestamp: datetime | None = None
