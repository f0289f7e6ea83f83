from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel

from src.domain.models import HeadwayMethod, HeadwayStatus, ThresholdMode


class VehicleSchema(BaseModel):
    vehicle_ref: str
    route_id: str
    direction_id: int
    route_short_name: str
    headsign: str = ""
    trip_id: str | None = None
    lat: float
    lon: float
    bearing: float = 0.0
    distance_along_route_m: float = 0.0
    progress: str
    next_stop_id: str | None = None
    next_stop_name: str = ""
    expected_arrival_time: datetime | None = None
    aimed_arrival_time: datetime | None = None
    timestamp: datetime | None = None


class HeadwayResultSchema(BaseModel):
    vehicle_ref: str
    route_id: str
    direction_id: int
    leader_ref: str | None = None
    actual_headway_s: float | None = None
    scheduled_headway_s: float | None = None
    ratio_pct: float | None = None
    method: HeadwayMethod | None = None
    excluded: bool = False


class VehiclesResponseSchema(BaseModel):
    fetched_at: datetime
    vehicles: list[VehicleSchema]
    headways: list[HeadwayResultSchema]


class ThresholdsSchema(BaseModel):
    mode: ThresholdMode
    bunching_pct: float
    gapping_pct: float
    bunching_mins: float
    gapping_mins: float


class BreakdownSchema(BaseModel):
    total: int
    bunching_count: int
    on_time_count: int
    gapping_count: int
    unknown_count: int
    bunching_pct: float
    on_time_pct: float
    gapping_pct: float


class RouteMetricsSchema(BaseModel):
    route_id: str
    direction_id: int
    route_short_name: str
    route_category: str
    vehicle_count: int
    breakdown: BreakdownSchema


class MethodBreakdownSchema(BaseModel):
    prediction_count: int
    distance_count: int
    prediction_pct: float
    distance_pct: float


class MetricsResponseSchema(BaseModel):
    fetched_at: datetime
    thresholds: ThresholdsSchema
    city: BreakdownSchema
    routes: list[RouteMetricsSchema]
    methods: MethodBreakdownSchema


class StopHeadwaySchema(BaseModel):
    stop_id: str
    stop_name: str
    lat: float
    lon: float
    route_id: str
    direction_id: int
    leader_ref: str
    follower_ref: str
    actual_headway_s: float
    scheduled_headway_s: float | None = None
    ratio_pct: float | None = None
    status: HeadwayStatus


class FeatureCollectionSchema(BaseModel):
    type: Literal["FeatureCollection"] = "FeatureCollection"
    features: list[dict[str, Any]]


class HealthSchema(BaseModel):
    status: str
    gtfs_loaded: bool
    last_vehicle_fetch: datetime | None = None
    vehicle_count: int
    route_count: int
    stop_count: int
    consecutive_failures: int
    stale: bool
    load_error: str | None = None
