from __future__ import annotations

from fastapi import Request

from src.adapters.archives.http_gtfs_archive_source import HttpGtfsArchiveSource
from src.adapters.archives.s3_cached_gtfs_archive_source import (
    S3CachedGtfsArchiveSource,
)
from src.adapters.persistence import LocalGtfsRepository, ZipGtfsRepository
from src.adapters.realtime.http_gtfs_realtime_feed_provider import (
    HttpGtfsRealtimeFeedProvider,
)
from src.adapters.settings import HeadwayRuntimeConfig
from src.app.ports.output import (
    IGtfsArchiveSource,
    IGtfsRepository,
    IRealtimeFeedProvider,
)
from src.app.services.headway_poller import HeadwayPoller
from src.app.services.headway_state import HeadwayState
from src.app.services.headway_view_service import HeadwayViewService


def get_headway_view_service(request: Request) -> HeadwayViewService:
    return request.app.state.headway_view


def build_gtfs_repository(config: HeadwayRuntimeConfig) -> IGtfsRepository:
    """Pick the static feed source from configuration.

    GTFS_PATH (unpacked tables) wins over the zip archive; the archive is
    mirrored through S3 when GTFS_ARCHIVE_BUCKET is set.
    """

    if config.gtfs_path:
        return LocalGtfsRepository(base_path=config.gtfs_path)

    source: IGtfsArchiveSource = HttpGtfsArchiveSource()
    if config.gtfs_archive_bucket:
        source = S3CachedGtfsArchiveSource(
            upstream=source, bucket=config.gtfs_archive_bucket
        )
    return ZipGtfsRepository(archive_source=source)


def build_poller(
    state: HeadwayState,
    config: HeadwayRuntimeConfig,
    feed_provider: IRealtimeFeedProvider | None = None,
) -> HeadwayPoller:
    return HeadwayPoller(
        state=state,
        feed_provider=feed_provider
        or HttpGtfsRealtimeFeedProvider(timeout_s=config.fetch_timeout_s),
        poll_interval_s=config.poll_interval_s,
        fetch_timeout_s=config.fetch_timeout_s,
        max_headway_cap_s=config.max_headway_cap_s,
        speed_mps=config.assumed_bus_speed_mps,
    )
