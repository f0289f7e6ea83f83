from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from src.domain.algorithms.fusion import fuse_vehicles
from src.domain.models import (
    GtfsStore,
    ProgressState,
    RawStopTimeUpdate,
    RawTripUpdate,
    RawVehiclePosition,
)

T0 = datetime(2024, 3, 6, 16, 5, tzinfo=timezone.utc)


def _position(**overrides) -> RawVehiclePosition:
    values = dict(
        entity_id="e1",
        trip_id="T1",
        vehicle_id="7001",
        lat=47.605,
        lon=-122.330,
        current_stop_sequence=2,
        stop_id="S2",
        current_status="IN_TRANSIT_TO",
        timestamp=T0,
    )
    values.update(overrides)
    return RawVehiclePosition(**values)


def test_vehicle_is_snapped_and_enriched_from_static_data(store: GtfsStore) -> None:
    result = fuse_vehicles([_position()], [], store)

    assert len(result.vehicles) == 1
    v = result.vehicles[0]
    assert v.vehicle_ref == "7001"
    assert v.route_id == "R1"
    assert v.direction_id == 0
    assert v.route_short_name == "1"
    assert v.headsign == "Downtown"
    assert v.next_stop_id == "S2"
    assert v.next_stop_name == "2nd Ave"
    assert v.progress is ProgressState.NORMAL
    # Halfway between S1 and S2, about 556 m along.
    assert v.distance_along_route_m == pytest.approx(556.0, rel=0.01)
    assert v.bearing == pytest.approx(0.0, abs=0.01)
    assert result.onward_calls_by_vehicle == {}


@pytest.mark.parametrize(
    ("lat", "lon"),
    [(None, -122.33), (0.0, 0.0), (47.6, 0.0), (91.0, -122.33), (float("nan"), 1.0)],
)
def test_unusable_coordinates_are_skipped(
    store: GtfsStore, lat: float | None, lon: float | None
) -> None:
    result = fuse_vehicles([_position(lat=lat, lon=lon)], [], store)
    assert result.vehicles == ()


def test_vehicle_without_route_is_skipped(store: GtfsStore) -> None:
    result = fuse_vehicles([_position(trip_id="UNKNOWN", route_id=None)], [], store)
    assert result.vehicles == ()


def test_vehicle_ref_falls_back_to_label_then_entity(store: GtfsStore) -> None:
    result = fuse_vehicles(
        [
            _position(vehicle_id=None, vehicle_label="L-7"),
            _position(entity_id="e2", vehicle_id=None, vehicle_label=None),
        ],
        [],
        store,
    )
    assert [v.vehicle_ref for v in result.vehicles] == ["L-7", "e2"]


def test_direction_prefers_live_value_and_unknown_route_has_no_shape(
    store: GtfsStore,
) -> None:
    result = fuse_vehicles(
        [_position(trip_id=None, route_id="R1", direction_id=1)], [], store
    )

    v = result.vehicles[0]
    assert v.direction_id == 1
    assert v.distance_along_route_m == 0.0
    assert v.route_short_name == "1"
    assert v.headsign == ""


def test_stopped_at_means_layover(store: GtfsStore) -> None:
    result = fuse_vehicles([_position(current_status="STOPPED_AT")], [], store)
    assert result.vehicles[0].progress is ProgressState.LAYOVER


def test_trip_updates_become_onward_calls(store: GtfsStore) -> None:
    tu = RawTripUpdate(
        trip_id="T1",
        stop_time_updates=(
            RawStopTimeUpdate(stop_sequence=1, stop_id="S1", arrival_time=T0),
            RawStopTimeUpdate(
                stop_sequence=2,
                stop_id="S2",
                arrival_time=T0 + timedelta(seconds=120),
                arrival_delay_s=60,
            ),
            RawStopTimeUpdate(
                stop_sequence=3, stop_id="S3", arrival_time=T0 + timedelta(seconds=300)
            ),
            RawStopTimeUpdate(stop_sequence=None, stop_id="S9"),
        ),
    )

    result = fuse_vehicles([_position()], [tu], store)

    v = result.vehicles[0]
    calls = result.onward_calls_by_vehicle["7001"]
    assert [c.stop_id for c in calls] == ["S2", "S3", "S9"]
    assert calls[0].stop_name == "2nd Ave"
    assert calls[0].aimed_arrival == T0 + timedelta(seconds=60)
    assert calls[1].aimed_arrival is None
    assert calls[2].stop_name == ""
    assert v.expected_arrival_time == T0 + timedelta(seconds=120)
    assert v.aimed_arrival_time == T0 + timedelta(seconds=60)
