from __future__ import annotations

from datetime import datetime
from typing import Mapping, Sequence

from src.domain.algorithms.schedule import expected_headway_s
from src.domain.models import (
    GtfsStore,
    HeadwayMethod,
    HeadwayResult,
    OnwardCall,
    ProgressState,
    RouteDirection,
    Vehicle,
)

# Heuristic cruising speed for the distance fallback (~18 km/h), not a
# modelled physical constant.
DEFAULT_BUS_SPEED_MPS = 5.0
DEFAULT_MAX_HEADWAY_CAP_S = 1800.0


def is_excluded(vehicle: Vehicle, store: GtfsStore) -> bool:
    """Vehicles that have not started making progress along their route."""

    if vehicle.distance_along_route_m == 0:
        return True
    if vehicle.progress is ProgressState.LAYOVER:
        return True
    key = RouteDirection(vehicle.route_id, vehicle.direction_id)
    return store.is_first_stop(key, vehicle.next_stop_id)


def prediction_gap_s(
    follower_calls: Sequence[OnwardCall],
    leader: Vehicle,
    leader_calls: Sequence[OnwardCall],
) -> float | None:
    """Arrival gap at the furthest upcoming stop shared with the leader.

    The furthest common stop is the least noisy reference point. Only a gap
    where the follower arrives strictly after the leader counts.
    """

    if not follower_calls:
        return None

    leader_etas: dict[str, datetime] = {}
    if leader.next_stop_id and leader.expected_arrival_time is not None:
        leader_etas[leader.next_stop_id] = leader.expected_arrival_time
    for call in leader_calls:
        eta = call.eta
        if call.stop_id and eta is not None:
            leader_etas[call.stop_id] = eta

    if not leader_etas:
        return None

    for call in reversed(follower_calls):
        leader_eta = leader_etas.get(call.stop_id)
        follower_eta = call.eta
        if leader_eta is None or follower_eta is None:
            continue
        gap = (follower_eta - leader_eta).total_seconds()
        if gap > 0:
            return gap

    return None


def distance_gap_s(
    follower: Vehicle, leader: Vehicle, speed_mps: float = DEFAULT_BUS_SPEED_MPS
) -> float:
    gap_m = leader.distance_along_route_m - follower.distance_along_route_m
    if gap_m <= 0 or speed_mps <= 0:
        return 0.0
    return gap_m / speed_mps


def _unpaired(
    vehicle: Vehicle, *, excluded: bool, scheduled_s: float | None = None
) -> HeadwayResult:
    return HeadwayResult(
        vehicle_ref=vehicle.vehicle_ref,
        route_id=vehicle.route_id,
        direction_id=vehicle.direction_id,
        scheduled_headway_s=scheduled_s,
        excluded=excluded,
    )


def compute_headways(
    vehicles: Sequence[Vehicle],
    onward_calls_by_vehicle: Mapping[str, Sequence[OnwardCall]],
    store: GtfsStore,
    now: datetime,
    *,
    max_headway_cap_s: float = DEFAULT_MAX_HEADWAY_CAP_S,
    speed_mps: float = DEFAULT_BUS_SPEED_MPS,
) -> list[HeadwayResult]:
    """Headway of every vehicle behind the vehicle directly ahead of it.

    Vehicles are grouped by route+direction and ranked by distance along the
    route; the furthest along leads. Each follower is measured against its
    immediate leader by shared-stop predictions, falling back to distance over
    an assumed speed. Classification is left to the metrics layer.
    """

    results: list[HeadwayResult] = []
    groups: dict[RouteDirection, list[Vehicle]] = {}

    for v in vehicles:
        if is_excluded(v, store):
            results.append(_unpaired(v, excluded=True))
            continue
        groups.setdefault(RouteDirection(v.route_id, v.direction_id), []).append(v)

    for key, group in groups.items():
        group.sort(key=lambda v: v.distance_along_route_m, reverse=True)
        scheduled = expected_headway_s(store, key, now)

        results.append(_unpaired(group[0], excluded=False, scheduled_s=scheduled))

        for leader, follower in zip(group, group[1:]):
            gap = prediction_gap_s(
                onward_calls_by_vehicle.get(follower.vehicle_ref, ()),
                leader,
                onward_calls_by_vehicle.get(leader.vehicle_ref, ()),
            )
            method = HeadwayMethod.PREDICTION
            if gap is None:
                gap = distance_gap_s(follower, leader, speed_mps)
                method = HeadwayMethod.DISTANCE

            actual = min(gap, max_headway_cap_s)
            ratio = (
                actual / scheduled * 100.0
                if scheduled is not None and scheduled > 0
                else None
            )
            results.append(
                HeadwayResult(
                    vehicle_ref=follower.vehicle_ref,
                    route_id=key.route_id,
                    direction_id=key.direction_id,
                    leader_ref=leader.vehicle_ref,
                    actual_headway_s=actual,
                    scheduled_headway_s=scheduled,
                    ratio_pct=ratio,
                    method=method,
                    excluded=False,
                )
            )

    return results
