from .gtfs_archive_source import IGtfsArchiveSource
from .gtfs_repository import IGtfsRepository
from .realtime_feed_provider import IRealtimeFeedProvider

__all__ = [
    "IGtfsArchiveSource",
    "IGtfsRepository",
    "IRealtimeFeedProvider",
]
