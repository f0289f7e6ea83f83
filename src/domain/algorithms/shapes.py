"""Route geometry: cumulative path distances and snapping live positions.

Snapping projects in raw lon/lat space, treating degrees as Cartesian
coordinates. That is only sound at city scale and away from the poles and the
antimeridian; distances reported back are always great-circle meters.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Iterable

from src.domain.algorithms.geo_utils import haversine_m, initial_bearing_deg
from src.domain.models import GtfsTrip, RouteDirection, ShapePoint


@dataclass(frozen=True, slots=True)
class SnapResult:
    distance_along_route_m: float
    bearing: float


def build_shape_points(
    raw: Iterable[tuple[int, float, float]],
) -> tuple[ShapePoint, ...]:
    """Build an ordered path from (sequence, lat, lon) triples.

    Points are sorted by sequence and each carries the cumulative great-circle
    distance from the first point.
    """

    ordered = sorted(raw, key=lambda x: x[0])

    out: list[ShapePoint] = []
    total = 0.0
    for i, (seq, lat, lon) in enumerate(ordered):
        if i > 0:
            prev = out[-1]
            total += haversine_m(prev.lat, prev.lon, lat, lon)
        out.append(
            ShapePoint(lat=lat, lon=lon, sequence=seq, cumulative_distance_m=total)
        )
    return tuple(out)


def snap_to_shape(
    lat: float, lon: float, points: tuple[ShapePoint, ...]
) -> SnapResult:
    """Project a position onto the nearest segment of a path."""

    if not points:
        return SnapResult(distance_along_route_m=0.0, bearing=0.0)
    if len(points) == 1:
        return SnapResult(
            distance_along_route_m=points[0].cumulative_distance_m, bearing=0.0
        )

    best_d = float("inf")
    best_along = 0.0
    best_a = points[0]
    best_b = points[1]

    for a, b in zip(points, points[1:]):
        abx = b.lon - a.lon
        aby = b.lat - a.lat
        ab_len2 = abx * abx + aby * aby

        t = 0.0
        if ab_len2 > 0.0:
            t = ((lon - a.lon) * abx + (lat - a.lat) * aby) / ab_len2
            t = max(0.0, min(1.0, t))

        d = haversine_m(lat, lon, a.lat + t * aby, a.lon + t * abx)
        if d < best_d:
            best_d = d
            best_along = a.cumulative_distance_m + t * (
                b.cumulative_distance_m - a.cumulative_distance_m
            )
            best_a = a
            best_b = b

    return SnapResult(
        distance_along_route_m=best_along,
        bearing=initial_bearing_deg(best_a.lat, best_a.lon, best_b.lat, best_b.lon),
    )


def canonical_shape_ids(trips: Iterable[GtfsTrip]) -> dict[RouteDirection, str]:
    """Pick the shape used by the most trips for each route+direction.

    Ties go to the shape seen first.
    """

    counts: dict[RouteDirection, Counter[str]] = {}
    for trip in trips:
        if not trip.shape_id:
            continue
        counts.setdefault(trip.route_direction, Counter())[trip.shape_id] += 1

    return {
        key: shape_counts.most_common(1)[0][0]
        for key, shape_counts in counts.items()
        if shape_counts
    }
