from .gtfs import (
    CorruptGtfsArchiveError,
    GtfsLoadError,
    MissingGtfsTableError,
    StoreNotLoadedError,
    UnknownTimezoneError,
)
from .realtime import RealtimeFeedError

__all__ = [
    "CorruptGtfsArchiveError",
    "GtfsLoadError",
    "MissingGtfsTableError",
    "RealtimeFeedError",
    "StoreNotLoadedError",
    "UnknownTimezoneError",
]
