from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Mapping, Sequence

from src.domain.algorithms.headway import DEFAULT_MAX_HEADWAY_CAP_S
from src.domain.algorithms.schedule import expected_headway_s
from src.domain.models import (
    GtfsStore,
    OnwardCall,
    RouteDirection,
    StopHeadwayResult,
    Vehicle,
)


@dataclass(frozen=True, slots=True)
class _Arrival:
    vehicle_ref: str
    eta: datetime


def compute_stop_headways(
    vehicles: Sequence[Vehicle],
    onward_calls_by_vehicle: Mapping[str, Sequence[OnwardCall]],
    store: GtfsStore,
    now: datetime,
    *,
    max_headway_cap_s: float = DEFAULT_MAX_HEADWAY_CAP_S,
) -> list[StopHeadwayResult]:
    """Gap between the next two predicted arrivals at each stop.

    Arrivals are grouped per stop and route+direction. Vehicles without onward
    calls contribute their next-stop ETA only.
    """

    grouped: dict[tuple[str, RouteDirection], list[_Arrival]] = {}

    for v in vehicles:
        key = RouteDirection(v.route_id, v.direction_id)
        calls = onward_calls_by_vehicle.get(v.vehicle_ref) or ()
        if calls:
            for call in calls:
                eta = call.eta
                if not call.stop_id or eta is None:
                    continue
                grouped.setdefault((call.stop_id, key), []).append(
                    _Arrival(v.vehicle_ref, eta)
                )
        elif v.next_stop_id and v.expected_arrival_time is not None:
            grouped.setdefault((v.next_stop_id, key), []).append(
                _Arrival(v.vehicle_ref, v.expected_arrival_time)
            )

    scheduled_cache: dict[RouteDirection, int | None] = {}
    results: list[StopHeadwayResult] = []

    for (stop_id, key), arrivals in grouped.items():
        if len(arrivals) < 2:
            continue
        stop = store.stops_by_id.get(stop_id)
        if stop is None:
            continue

        arrivals.sort(key=lambda a: a.eta)
        first, second = arrivals[0], arrivals[1]
        gap = (second.eta - first.eta).total_seconds()
        if gap <= 0:
            continue

        if key not in scheduled_cache:
            scheduled_cache[key] = expected_headway_s(store, key, now)
        scheduled = scheduled_cache[key]

        actual = min(gap, max_headway_cap_s)
        results.append(
            StopHeadwayResult(
                stop_id=stop_id,
                stop_name=stop.name,
                lat=stop.location.lat,
                lon=stop.location.lon,
                route_id=key.route_id,
                direction_id=key.direction_id,
                leader_ref=first.vehicle_ref,
                follower_ref=second.vehicle_ref,
                actual_headway_s=actual,
                scheduled_headway_s=scheduled,
                ratio_pct=(
                    actual / scheduled * 100.0 if scheduled and scheduled > 0 else None
                ),
            )
        )

    return results
