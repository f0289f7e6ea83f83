from __future__ import annotations

from bisect import bisect_left
from datetime import datetime

from src.domain.algorithms.service_calendar import (
    active_service_ids,
    seconds_since_midnight,
    service_date,
)
from src.domain.models import FrequencyWindow, GtfsStore, RouteDirection

SECONDS_PER_DAY = 24 * 3600


def headway_from_frequencies(
    windows: tuple[FrequencyWindow, ...], time_s: int
) -> int | None:
    """Declared headway for a time of day.

    `windows` must be sorted by start time. A window containing the time wins;
    windows past midnight (GTFS times >= 24h) are matched too. Between or after
    windows the most recently started window is extrapolated, not the day's
    last window, so a gap between a morning and an evening window reports the
    morning headway. Before the first window there is no declared service yet,
    so the result is None.
    """

    if not windows:
        return None

    for candidate in (time_s, time_s + SECONDS_PER_DAY):
        for w in windows:
            if w.contains(candidate):
                return w.headway_s

    preceding = None
    for w in windows:
        if w.start_time_s > time_s:
            break
        preceding = w
    return preceding.headway_s if preceding is not None else None


def headway_from_departures(times: list[int], time_s: int) -> int | None:
    """Gap between the scheduled departures straddling `time_s`.

    `times` must be sorted. Past the last departure the final gap is used.
    """

    if len(times) < 2:
        return None

    after = min(bisect_left(times, time_s), len(times) - 1)
    before = max(after - 1, 0)
    if before == after:
        return None

    gap = times[after] - times[before]
    return gap if gap > 0 else None


def expected_headway_s(
    store: GtfsStore, key: RouteDirection, moment: datetime
) -> int | None:
    """Scheduled headway for a route+direction at a moment, or None if unknown."""

    time_s = seconds_since_midnight(moment, store.timezone)

    if key in store.frequencies_by_route:
        return headway_from_frequencies(store.frequencies_by_route[key], time_s)

    day = service_date(moment, store.timezone)
    service_ids = active_service_ids(day, store.calendars, store.calendar_exceptions)
    if not service_ids:
        return None

    merged: list[int] = []
    for service_id in service_ids:
        merged.extend(store.departures_by_service.get((key, service_id), ()))

    merged.sort()
    return headway_from_departures(merged, time_s)
