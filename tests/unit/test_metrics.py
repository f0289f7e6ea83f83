from __future__ import annotations

from datetime import datetime, timezone

import pytest

from src.domain.algorithms.metrics import aggregate, classify
from src.domain.models import (
    GtfsRoute,
    HeadwayMethod,
    HeadwayResult,
    HeadwayStatus,
    RouteCategory,
    ThresholdMode,
    ThresholdParams,
)

FETCHED_AT = datetime(2024, 3, 6, 16, 5, tzinfo=timezone.utc)
PCT = ThresholdParams()
ABS = ThresholdParams(mode=ThresholdMode.ABSOLUTE)


def _result(
    ref: str,
    *,
    route_id: str = "R1",
    actual: float | None = 300.0,
    ratio: float | None = None,
    method: HeadwayMethod | None = HeadwayMethod.DISTANCE,
) -> HeadwayResult:
    return HeadwayResult(
        vehicle_ref=ref,
        route_id=route_id,
        direction_id=0,
        leader_ref="lead" if actual is not None else None,
        actual_headway_s=actual,
        scheduled_headway_s=600.0 if ratio is not None else None,
        ratio_pct=ratio,
        method=method if actual is not None else None,
    )


@pytest.mark.parametrize(
    ("result", "thresholds", "expected"),
    [
        (_result("a", ratio=15.0), PCT, HeadwayStatus.BUNCHING),
        (_result("i", ratio=160.0), PCT, HeadwayStatus.GAPPING),
        (_result("j", ratio=100.0), PCT, HeadwayStatus.ON_TIME),
        (_result("k", actual=None), ABS, HeadwayStatus.UNKNOWN),
        (_result("b", ratio=20.0), PCT, HeadwayStatus.ON_TIME),
        (_result("c", ratio=150.0), PCT, HeadwayStatus.ON_TIME),
        (_result("d", ratio=151.0), PCT, HeadwayStatus.GAPPING),
        (_result("e", actual=None), PCT, HeadwayStatus.UNKNOWN),
        # No schedule: percent mode falls back to minutes.
        (_result("f", actual=120.0), PCT, HeadwayStatus.BUNCHING),
        (_result("g", actual=900.0, ratio=100.0), ABS, HeadwayStatus.GAPPING),
        (_result("h", actual=600.0, ratio=10.0), ABS, HeadwayStatus.ON_TIME),
    ],
)
def test_classify(
    result: HeadwayResult, thresholds: ThresholdParams, expected: HeadwayStatus
) -> None:
    assert classify(result, thresholds) is expected


def test_aggregate_city_and_route_percentages() -> None:
    results = [
        _result("lead", actual=None),
        _result("a", ratio=10.0),
        _result("b", ratio=10.0),
        _result("c", ratio=100.0, method=HeadwayMethod.PREDICTION),
        _result("d", ratio=100.0),
        _result("e", ratio=200.0),
    ]

    snapshot = aggregate(
        results,
        PCT,
        routes_by_id={
            "R1": GtfsRoute(route_id="R1", short_name="1", category=RouteCategory.LOCAL)
        },
        fetched_at=FETCHED_AT,
    )

    city = snapshot.city
    assert (city.total, city.bunching_count, city.on_time_count, city.gapping_count) == (
        5,
        2,
        2,
        1,
    )
    assert city.bunching_pct == pytest.approx(40.0)
    assert city.on_time_pct == pytest.approx(40.0)
    assert city.gapping_pct == pytest.approx(20.0)

    (route,) = snapshot.routes
    assert route.route_short_name == "1"
    assert route.route_category == "Local"
    assert route.vehicle_count == 6
    assert route.breakdown.total == 5

    assert snapshot.methods.prediction_count == 1
    assert snapshot.methods.distance_count == 4
    assert snapshot.methods.prediction_pct == pytest.approx(20.0)
    assert snapshot.thresholds is PCT
    assert snapshot.fetched_at == FETCHED_AT


def test_aggregate_orders_routes_by_gapping() -> None:
    results = [
        _result("a", route_id="R1", ratio=100.0),
        _result("b", route_id="R2", ratio=100.0),
        _result("c", route_id="R3", ratio=300.0),
        _result("d", route_id="R3", ratio=100.0),
    ]

    snapshot = aggregate(results, PCT, routes_by_id={}, fetched_at=FETCHED_AT)

    assert [r.route_id for r in snapshot.routes] == ["R3", "R1", "R2"]
    assert snapshot.routes[0].route_short_name == "R3"


def test_aggregate_without_measurable_headways() -> None:
    snapshot = aggregate(
        [_result("lead", actual=None)], PCT, routes_by_id={}, fetched_at=FETCHED_AT
    )

    assert snapshot.city.total == 0
    assert snapshot.city.gapping_pct == 0.0
    assert snapshot.routes == ()
    assert snapshot.methods.prediction_pct == 0.0
