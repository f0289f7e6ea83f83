from __future__ import annotations

from datetime import datetime
from typing import Iterable, Mapping, Protocol

from src.domain.models import (
    GtfsRoute,
    HeadwayBreakdown,
    HeadwayMethod,
    HeadwayResult,
    HeadwayStatus,
    MethodBreakdown,
    MetricsSnapshot,
    RouteDirection,
    RouteMetrics,
    ThresholdMode,
    ThresholdParams,
)


class Classifiable(Protocol):
    @property
    def actual_headway_s(self) -> float | None: ...

    @property
    def ratio_pct(self) -> float | None: ...


def _three_way(value: float, low: float, high: float) -> HeadwayStatus:
    if value < low:
        return HeadwayStatus.BUNCHING
    if value > high:
        return HeadwayStatus.GAPPING
    return HeadwayStatus.ON_TIME


def classify(result: Classifiable, thresholds: ThresholdParams) -> HeadwayStatus:
    if result.actual_headway_s is None:
        return HeadwayStatus.UNKNOWN
    if thresholds.mode is ThresholdMode.PERCENT and result.ratio_pct is not None:
        return _three_way(
            result.ratio_pct, thresholds.bunching_pct, thresholds.gapping_pct
        )
    # Absolute mode, or no schedule to compare against.
    return _three_way(
        result.actual_headway_s,
        thresholds.bunching_mins * 60.0,
        thresholds.gapping_mins * 60.0,
    )


def aggregate(
    results: Iterable[HeadwayResult],
    thresholds: ThresholdParams,
    *,
    routes_by_id: Mapping[str, GtfsRoute],
    fetched_at: datetime,
) -> MetricsSnapshot:
    """Roll classified headways up city-wide and per route+direction.

    Routes are ordered by descending gapping percentage; ties keep the order
    in which routes were first encountered.
    """

    results = list(results)

    vehicle_counts: dict[RouteDirection, int] = {}
    for r in results:
        key = RouteDirection(r.route_id, r.direction_id)
        vehicle_counts[key] = vehicle_counts.get(key, 0) + 1

    city = HeadwayBreakdown()
    methods = MethodBreakdown()
    per_route: dict[RouteDirection, RouteMetrics] = {}

    for r in results:
        if r.actual_headway_s is None:
            continue
        status = classify(r, thresholds)
        city.tally(status)

        if r.method is HeadwayMethod.PREDICTION:
            methods.prediction_count += 1
        elif r.method is HeadwayMethod.DISTANCE:
            methods.distance_count += 1

        key = RouteDirection(r.route_id, r.direction_id)
        entry = per_route.get(key)
        if entry is None:
            route = routes_by_id.get(r.route_id)
            entry = per_route[key] = RouteMetrics(
                route_id=r.route_id,
                direction_id=r.direction_id,
                route_short_name=route.short_name if route is not None else r.route_id,
                route_category=(
                    route.category.value if route is not None else "Local"
                ),
                vehicle_count=vehicle_counts.get(key, 0),
            )
        entry.breakdown.tally(status)

    city.finalize()
    for entry in per_route.values():
        entry.breakdown.finalize()

    counted = methods.prediction_count + methods.distance_count
    if counted > 0:
        methods.prediction_pct = methods.prediction_count / counted * 100.0
        methods.distance_pct = methods.distance_count / counted * 100.0

    ordered = sorted(
        per_route.values(), key=lambda m: m.breakdown.gapping_pct, reverse=True
    )

    return MetricsSnapshot(
        fetched_at=fetched_at,
        thresholds=thresholds,
        city=city,
        routes=tuple(ordered),
        methods=methods,
    )
