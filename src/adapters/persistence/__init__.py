from .local_gtfs_repository import LocalGtfsRepository
from .zip_gtfs_repository import ZipGtfsRepository

__all__ = [
    "LocalGtfsRepository",
    "ZipGtfsRepository",
]
