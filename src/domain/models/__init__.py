from .geo import GeoPoint, is_usable_fix
from .gtfs import (
    CalendarException,
    FrequencyWindow,
    GtfsRoute,
    GtfsStore,
    GtfsTrip,
    RouteCategory,
    RouteDirection,
    ServiceCalendar,
    ShapePoint,
    Stop,
    StopTime,
)
from .headway import (
    HeadwayBreakdown,
    HeadwayMethod,
    HeadwayResult,
    HeadwayStatus,
    MethodBreakdown,
    MetricsSnapshot,
    RouteMetrics,
    StopHeadwayResult,
    ThresholdMode,
    ThresholdParams,
)
from .realtime import (
    OnwardCall,
    ProgressState,
    RawStopTimeUpdate,
    RawTripUpdate,
    RawVehiclePosition,
    Vehicle,
)

__all__ = [
    "CalendarException",
    "FrequencyWindow",
    "GeoPoint",
    "GtfsRoute",
    "GtfsStore",
    "GtfsTrip",
    "HeadwayBreakdown",
    "HeadwayMethod",
    "HeadwayResult",
    "HeadwayStatus",
    "MethodBreakdown",
    "MetricsSnapshot",
    "OnwardCall",
    "ProgressState",
    "RawStopTimeUpdate",
    "RawTripUpdate",
    "RawVehiclePosition",
    "RouteCategory",
    "RouteDirection",
    "RouteMetrics",
    "ServiceCalendar",
    "ShapePoint",
    "Stop",
    "StopHeadwayResult",
    "StopTime",
    "ThresholdMode",
    "ThresholdParams",
    "Vehicle",
    "is_usable_fix",
]
