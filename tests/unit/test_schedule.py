from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from src.domain.algorithms.schedule import (
    expected_headway_s,
    headway_from_departures,
    headway_from_frequencies,
)
from src.domain.algorithms.service_calendar import (
    active_service_ids,
    seconds_since_midnight,
    service_date,
)
from src.domain.models import (
    CalendarException,
    FrequencyWindow,
    GtfsStore,
    RouteDirection,
    ServiceCalendar,
)

WINDOWS = (
    FrequencyWindow(trip_id="F", start_time_s=6 * 3600, end_time_s=9 * 3600, headway_s=600),
    FrequencyWindow(trip_id="F", start_time_s=9 * 3600, end_time_s=15 * 3600, headway_s=900),
    FrequencyWindow(trip_id="F", start_time_s=23 * 3600, end_time_s=25 * 3600, headway_s=1200),
)


@pytest.mark.parametrize(
    ("time_s", "expected"),
    [
        (7 * 3600, 600),
        (9 * 3600, 900),
        (16 * 3600, 900),  # gap: latest started window, not the 23:00 one
        (1800, 1200),  # 00:30 falls in the 23:00-25:00 window
        (5 * 3600, None),  # before any window
    ],
)
def test_headway_from_frequencies(time_s: int, expected: int | None) -> None:
    assert headway_from_frequencies(WINDOWS, time_s) == expected


def test_headway_from_frequencies_without_windows() -> None:
    assert headway_from_frequencies((), 3600) is None


@pytest.mark.parametrize(
    ("times", "time_s", "expected"),
    [
        ([100, 200, 400], 150, 100),
        ([100, 200, 400], 300, 200),
        ([100, 200, 400], 500, 200),
        ([100, 200, 400], 50, None),
        ([100], 150, None),
        ([100, 100], 150, None),
    ],
)
def test_headway_from_departures(
    times: list[int], time_s: int, expected: int | None
) -> None:
    assert headway_from_departures(times, time_s) == expected


def test_service_clock_uses_feed_timezone() -> None:
    # 07:30 UTC on 2024-03-07 is still 2024-03-06 in Seattle.
    moment = datetime(2024, 3, 7, 7, 30, tzinfo=timezone.utc)

    assert service_date(moment, "America/Los_Angeles") == date(2024, 3, 6)
    assert seconds_since_midnight(moment, "America/Los_Angeles") == 23 * 3600 + 1800


def test_naive_datetime_is_feed_local() -> None:
    moment = datetime(2024, 3, 6, 8, 5)
    assert seconds_since_midnight(moment, "America/Los_Angeles") == 8 * 3600 + 300


def test_removal_exception_empties_weekday_service() -> None:
    calendars = [
        ServiceCalendar(
            service_id="WK",
            weekdays=(True, True, True, True, True, False, False),
            start_date=date(2024, 1, 1),
            end_date=date(2024, 12, 31),
        )
    ]
    wednesday = date(2024, 3, 6)
    exceptions = [CalendarException(service_id="WK", date=wednesday, exception_type=2)]

    assert active_service_ids(wednesday, calendars, ()) == {"WK"}
    assert active_service_ids(wednesday, calendars, exceptions) == set()


def test_addition_exception_and_date_range() -> None:
    calendars = [
        ServiceCalendar(
            service_id="WK",
            weekdays=(True, True, True, True, True, False, False),
            start_date=date(2024, 1, 1),
            end_date=date(2024, 6, 30),
        )
    ]
    saturday = date(2024, 3, 9)
    exceptions = [CalendarException(service_id="HOL", date=saturday, exception_type=1)]

    assert active_service_ids(saturday, calendars, exceptions) == {"HOL"}
    assert active_service_ids(date(2024, 7, 3), calendars, ()) == set()


def test_expected_headway_from_departures(
    store: GtfsStore, weekday_morning: datetime
) -> None:
    assert expected_headway_s(store, RouteDirection("R1", 0), weekday_morning) == 600


def test_expected_headway_none_when_service_not_running(store: GtfsStore) -> None:
    sunday = datetime(2024, 3, 10, 8, 5)
    assert expected_headway_s(store, RouteDirection("R1", 0), sunday) is None


def test_expected_headway_unknown_route(
    store: GtfsStore, weekday_morning: datetime
) -> None:
    assert expected_headway_s(store, RouteDirection("R9", 0), weekday_morning) is None
