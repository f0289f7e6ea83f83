from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class HeadwayStatus(str, Enum):
    BUNCHING = "bunching"
    ON_TIME = "on-time"
    GAPPING = "gapping"
    UNKNOWN = "unknown"


class HeadwayMethod(str, Enum):
    PREDICTION = "prediction"
    DISTANCE = "distance"


class ThresholdMode(str, Enum):
    PERCENT = "pct"
    ABSOLUTE = "abs"


def _clamp(value: Any, default: float, lo: float, hi: float) -> float:
    if value is None or value == "":
        return default
    try:
        n = float(value)
    except (TypeError, ValueError):
        return default
    if n != n:  # NaN
        return default
    return max(lo, min(hi, n))


@dataclass(frozen=True, slots=True)
class ThresholdParams:
    mode: ThresholdMode = ThresholdMode.PERCENT
    bunching_pct: float = 20.0
    gapping_pct: float = 150.0
    bunching_mins: float = 3.0
    gapping_mins: float = 12.0

    @classmethod
    def clamped(
        cls,
        *,
        mode: ThresholdMode | str = ThresholdMode.PERCENT,
        bunching_pct: Any = None,
        gapping_pct: Any = None,
        bunching_mins: Any = None,
        gapping_mins: Any = None,
    ) -> "ThresholdParams":
        """Build thresholds from untrusted consumer input.

        Missing or unparseable values fall back to the defaults; everything else
        is clamped into the accepted range. An unknown mode raises ValueError.
        """

        d = cls()
        return cls(
            mode=ThresholdMode(mode),
            bunching_pct=_clamp(bunching_pct, d.bunching_pct, 1.0, 100.0),
            gapping_pct=_clamp(gapping_pct, d.gapping_pct, 100.0, 500.0),
            bunching_mins=_clamp(bunching_mins, d.bunching_mins, 0.5, 30.0),
            gapping_mins=_clamp(gapping_mins, d.gapping_mins, 1.0, 60.0),
        )


@dataclass(frozen=True, slots=True)
class HeadwayResult:
    vehicle_ref: str
    route_id: str
    direction_id: int
    leader_ref: str | None = None
    actual_headway_s: float | None = None
    scheduled_headway_s: float | None = None
    ratio_pct: float | None = None
    status: HeadwayStatus = HeadwayStatus.UNKNOWN
    method: HeadwayMethod | None = None
    excluded: bool = False


@dataclass(slots=True)
class HeadwayBreakdown:
    total: int = 0
    bunching_count: int = 0
    on_time_count: int = 0
    gapping_count: int = 0
    unknown_count: int = 0
    bunching_pct: float = 0.0
    on_time_pct: float = 0.0
    gapping_pct: float = 0.0

    def tally(self, status: HeadwayStatus) -> None:
        self.total += 1
        if status is HeadwayStatus.BUNCHING:
            self.bunching_count += 1
        elif status is HeadwayStatus.ON_TIME:
            self.on_time_count += 1
        elif status is HeadwayStatus.GAPPING:
            self.gapping_count += 1
        else:
            self.unknown_count += 1

    def finalize(self) -> None:
        if self.total <= 0:
            return
        self.bunching_pct = self.bunching_count / self.total * 100.0
        self.on_time_pct = self.on_time_count / self.total * 100.0
        self.gapping_pct = self.gapping_count / self.total * 100.0


@dataclass(slots=True)
class RouteMetrics:
    route_id: str
    direction_id: int
    route_short_name: str
    route_category: str
    vehicle_count: int = 0
    breakdown: HeadwayBreakdown = field(default_factory=HeadwayBreakdown)


@dataclass(slots=True)
class MethodBreakdown:
    prediction_count: int = 0
    distance_count: int = 0
    prediction_pct: float = 0.0
    distance_pct: float = 0.0


@dataclass(frozen=True, slots=True)
class MetricsSnapshot:
    fetched_at: datetime
    thresholds: ThresholdParams
    city: HeadwayBreakdown
    routes: tuple[RouteMetrics, ...]
    methods: MethodBreakdown


@dataclass(frozen=True, slots=True)
class StopHeadwayResult:
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
    status: HeadwayStatus = HeadwayStatus.UNKNOWN
