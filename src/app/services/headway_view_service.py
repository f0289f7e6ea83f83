from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from src.app.services.headway_state import HeadwayState, LiveSnapshot
from src.domain.algorithms.metrics import aggregate, classify
from src.domain.algorithms.stop_headways import compute_stop_headways
from src.domain.models import MetricsSnapshot, StopHeadwayResult, ThresholdParams


@dataclass(slots=True)
class HeadwayViewService:
    """Read-only access to the latest published data.

    - Latest vehicles + headway results.
    - Metrics classified against caller-supplied thresholds.
    - Static route/stop geometry as GeoJSON (built once, cached).
    """

    state: HeadwayState

    _routes_geojson: dict[str, Any] | None = field(default=None, init=False, repr=False)
    _stops_geojson: dict[str, Any] | None = field(default=None, init=False, repr=False)

    def is_loaded(self) -> bool:
        return self.state.is_loaded

    def latest(self) -> LiveSnapshot | None:
        return self.state.snapshot

    def metrics(self, thresholds: ThresholdParams) -> MetricsSnapshot | None:
        """Metrics for the latest snapshot, or None before the first cycle."""

        store = self.state.require_store()
        snapshot = self.state.snapshot
        if snapshot is None:
            return None
        return aggregate(
            snapshot.headways,
            thresholds,
            routes_by_id=store.routes_by_id,
            fetched_at=snapshot.fetched_at,
        )

    def stop_headways(
        self, thresholds: ThresholdParams | None = None
    ) -> list[StopHeadwayResult]:
        store = self.state.require_store()
        snapshot = self.state.snapshot
        if snapshot is None:
            return []

        thresholds = thresholds or ThresholdParams()
        results = compute_stop_headways(
            snapshot.vehicles,
            snapshot.onward_calls_by_vehicle,
            store,
            snapshot.fetched_at,
        )
        return [replace(r, status=classify(r, thresholds)) for r in results]

    def routes_geojson(self) -> dict[str, Any]:
        if self._routes_geojson is not None:
            return self._routes_geojson

        store = self.state.require_store()
        features: list[dict[str, Any]] = []
        for key, shape_id in store.shape_id_by_route.items():
            route = store.routes_by_id.get(key.route_id)
            points = store.shapes_by_id.get(shape_id)
            if route is None or not points or len(points) < 2:
                continue
            features.append(
                {
                    "type": "Feature",
                    "geometry": {
                        "type": "LineString",
                        "coordinates": [[p.lon, p.lat] for p in points],
                    },
                    "properties": {
                        "routeId": route.route_id,
                        "directionId": key.direction_id,
                        "routeShortName": route.short_name,
                        "routeLongName": route.long_name,
                        "routeColor": f"#{route.color}",
                        "routeTextColor": f"#{route.text_color}",
                        "routeCategory": route.category.value,
                    },
                }
            )

        self._routes_geojson = {"type": "FeatureCollection", "features": features}
        return self._routes_geojson

    def stops_geojson(self) -> dict[str, Any]:
        if self._stops_geojson is not None:
            return self._stops_geojson

        store = self.state.require_store()
        features = [
            {
                "type": "Feature",
                "geometry": {
                    "type": "Point",
                    "coordinates": stop.location.as_lon_lat(),
                },
                "properties": {"stopId": stop.id, "stopName": stop.name},
            }
            for stop in store.stops_by_id.values()
        ]

        self._stops_geojson = {"type": "FeatureCollection", "features": features}
        return self._stops_geojson

    def health(self) -> dict[str, Any]:
        store = self.state.store
        snapshot = self.state.snapshot
        return {
            "status": "ok",
            "gtfs_loaded": store is not None,
            "last_vehicle_fetch": snapshot.fetched_at if snapshot else None,
            "vehicle_count": len(snapshot.vehicles) if snapshot else 0,
            "route_count": len(store.routes_by_id) if store else 0,
            "stop_count": len(store.stops_by_id) if store else 0,
            "consecutive_failures": self.state.consecutive_failures,
            "stale": self.state.is_stale,
            "load_error": self.state.load_error,
        }
