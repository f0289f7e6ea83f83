from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Query

from src.adapters.api.dependencies import get_headway_view_service
from src.adapters.api.schemas.headways import (
    FeatureCollectionSchema,
    HeadwayResultSchema,
    MetricsResponseSchema,
    StopHeadwaySchema,
    VehicleSchema,
    VehiclesResponseSchema,
)
from src.app.services.headway_view_service import HeadwayViewService
from src.domain.exceptions import StoreNotLoadedError
from src.domain.models import ThresholdParams

router = APIRouter(prefix="/api", tags=["headways"])


def _require_loaded(service: HeadwayViewService) -> None:
    if not service.is_loaded():
        raise HTTPException(status_code=503, detail="GTFS data not yet loaded")


def _thresholds(
    mode: str = Query(default="pct"),
    bunching_pct: str | None = Query(default=None, alias="bunchingPct"),
    gapping_pct: str | None = Query(default=None, alias="gappingPct"),
    bunching_mins: str | None = Query(default=None, alias="bunchingMins"),
    gapping_mins: str | None = Query(default=None, alias="gappingMins"),
) -> ThresholdParams:
    try:
        return ThresholdParams.clamped(
            mode=mode,
            bunching_pct=bunching_pct,
            gapping_pct=gapping_pct,
            bunching_mins=bunching_mins,
            gapping_mins=gapping_mins,
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=400, detail=f"Invalid threshold mode: {mode!r}"
        ) from exc


@router.get("/vehicles", response_model=VehiclesResponseSchema)
def list_vehicles(
    route_id: list[str] | None = Query(default=None),
    service: HeadwayViewService = Depends(get_headway_view_service),
) -> VehiclesResponseSchema:
    snapshot = service.latest()
    if snapshot is None:
        raise HTTPException(status_code=503, detail="Vehicle data not yet available")

    route_ids = set(route_id) if route_id else None
    vehicles = [
        v for v in snapshot.vehicles if route_ids is None or v.route_id in route_ids
    ]
    headways = [
        h for h in snapshot.headways if route_ids is None or h.route_id in route_ids
    ]

    return VehiclesResponseSchema(
        fetched_at=snapshot.fetched_at,
        vehicles=[
            VehicleSchema(
                vehicle_ref=v.vehicle_ref,
                route_id=v.route_id,
                direction_id=v.direction_id,
                route_short_name=v.route_short_name,
                headsign=v.headsign,
                trip_id=v.trip_id,
                lat=v.lat,
                lon=v.lon,
                bearing=v.bearing,
                distance_along_route_m=v.distance_along_route_m,
                progress=v.progress.value,
                next_stop_id=v.next_stop_id,
                next_stop_name=v.next_stop_name,
                expected_arrival_time=v.expected_arrival_time,
                aimed_arrival_time=v.aimed_arrival_time,
                timestamp=v.timestamp,
            )
            for v in vehicles
        ],
        headways=[
            HeadwayResultSchema(
                vehicle_ref=h.vehicle_ref,
                route_id=h.route_id,
                direction_id=h.direction_id,
                leader_ref=h.leader_ref,
                actual_headway_s=h.actual_headway_s,
                scheduled_headway_s=h.scheduled_headway_s,
                ratio_pct=h.ratio_pct,
                method=h.method,
                excluded=h.excluded,
            )
            for h in headways
        ],
    )


@router.get("/metrics", response_model=MetricsResponseSchema)
def get_metrics(
    thresholds: ThresholdParams = Depends(_thresholds),
    service: HeadwayViewService = Depends(get_headway_view_service),
) -> MetricsResponseSchema:
    try:
        snapshot = service.metrics(thresholds)
    except StoreNotLoadedError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc

    if snapshot is None:
        raise HTTPException(status_code=503, detail="Vehicle data not yet available")

    return MetricsResponseSchema.model_validate(asdict(snapshot))


@router.get("/stop-headways", response_model=list[StopHeadwaySchema])
def list_stop_headways(
    thresholds: ThresholdParams = Depends(_thresholds),
    service: HeadwayViewService = Depends(get_headway_view_service),
) -> list[StopHeadwaySchema]:
    _require_loaded(service)
    return [
        StopHeadwaySchema.model_validate(asdict(r))
        for r in service.stop_headways(thresholds)
    ]


@router.get("/routes", response_model=FeatureCollectionSchema)
def get_routes(
    service: HeadwayViewService = Depends(get_headway_view_service),
) -> FeatureCollectionSchema:
    _require_loaded(service)
    return FeatureCollectionSchema.model_validate(service.routes_geojson())


@router.get("/stops", response_model=FeatureCollectionSchema)
def get_stops(
    service: HeadwayViewService = Depends(get_headway_view_service),
) -> FeatureCollectionSchema:
    _require_loaded(service)
    return FeatureCollectionSchema.model_validate(service.stops_geojson())
