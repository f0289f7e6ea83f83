from __future__ import annotations

from datetime import date, datetime
from functools import lru_cache
from typing import Iterable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from src.domain.models import CalendarException, ServiceCalendar


@lru_cache(maxsize=16)
def _zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def is_known_timezone(name: str) -> bool:
    try:
        _zone(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def feed_local(moment: datetime, tz_name: str) -> datetime:
    """Express a moment in the feed's civil timezone.

    Naive datetimes are assumed to already be feed-local time.
    """

    if moment.tzinfo is None:
        return moment
    return moment.astimezone(_zone(tz_name))


def service_date(moment: datetime, tz_name: str) -> date:
    return feed_local(moment, tz_name).date()


def seconds_since_midnight(moment: datetime, tz_name: str) -> int:
    local = feed_local(moment, tz_name)
    return local.hour * 3600 + local.minute * 60 + local.second


def active_service_ids(
    day: date,
    calendars: Iterable[ServiceCalendar],
    exceptions: Iterable[CalendarException],
) -> set[str]:
    """Service ids running on a calendar date.

    Weekly patterns apply first, then calendar_dates additions (type 1) and
    removals (type 2) for that exact date.
    """

    active = {cal.service_id for cal in calendars if cal.runs_on(day)}
    for exc in exceptions:
        if exc.date != day:
            continue
        if exc.is_addition:
            active.add(exc.service_id)
        else:
            active.discard(exc.service_id)
    return active
