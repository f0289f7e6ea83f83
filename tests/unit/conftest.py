from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from src.domain.algorithms.schedule_index import build_store
from src.domain.algorithms.shapes import build_shape_points
from src.domain.models import (
    GeoPoint,
    GtfsRoute,
    GtfsStore,
    GtfsTrip,
    ServiceCalendar,
    Stop,
    StopTime,
)

WEEKDAYS_ONLY = (True, True, True, True, True, False, False)


@pytest.fixture()
def store() -> GtfsStore:
    """One north-bound route with weekday departures every 10 minutes from 08:00."""

    stops = {
        "S1": Stop(id="S1", name="1st Ave", location=GeoPoint(lat=47.600, lon=-122.330)),
        "S2": Stop(id="S2", name="2nd Ave", location=GeoPoint(lat=47.610, lon=-122.330)),
        "S3": Stop(id="S3", name="3rd Ave", location=GeoPoint(lat=47.620, lon=-122.330)),
    }
    shape = build_shape_points(
        [(1, 47.600, -122.330), (2, 47.610, -122.330), (3, 47.620, -122.330)]
    )
    trips = [
        GtfsTrip(
            trip_id=f"T{i}",
            route_id="R1",
            direction_id=0,
            shape_id="SH1",
            service_id="WK",
            headsign="Downtown",
        )
        for i in (1, 2, 3)
    ]
    first_stop_times = {
        f"T{i}": StopTime(
            trip_id=f"T{i}",
            stop_id="S1",
            stop_sequence=1,
            arrival_time_s=dep,
            departure_time_s=dep,
        )
        for i, dep in ((1, 8 * 3600), (2, 8 * 3600 + 600), (3, 8 * 3600 + 1200))
    }

    return build_store(
        routes=[GtfsRoute(route_id="R1", short_name="1", long_name="Downtown")],
        stops_by_id=stops,
        trips=trips,
        shapes_by_id={"SH1": shape},
        first_stop_times=first_stop_times,
        calendars=[
            ServiceCalendar(
                service_id="WK",
                weekdays=WEEKDAYS_ONLY,
                start_date=date(2024, 1, 1),
                end_date=date(2024, 12, 31),
            )
        ],
        timezone="America/Los_Angeles",
    )


@pytest.fixture()
def weekday_morning() -> datetime:
    # Wednesday 2024-03-06 08:05 PST.
    return datetime(2024, 3, 6, 16, 5, tzinfo=timezone.utc)
