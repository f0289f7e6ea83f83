from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Mapping

import httpx

from src.adapters.realtime.gtfs_rt_parsing import (
    decode_feed,
    parse_trip_update,
    parse_vehicle_position,
)
from src.app.ports.output import IRealtimeFeedProvider
from src.domain.exceptions import RealtimeFeedError
from src.domain.models import RawTripUpdate, RawVehiclePosition

DEFAULT_VEHICLE_POSITIONS_URL = (
    "https://s3.amazonaws.com/kcm-alerts-realtime-prod/vehiclepositions_enhanced.json"
)
DEFAULT_TRIP_UPDATES_URL = (
    "https://s3.amazonaws.com/kcm-alerts-realtime-prod/tripupdates_enhanced.json"
)


@dataclass(slots=True)
class HttpGtfsRealtimeFeedProvider(IRealtimeFeedProvider):
    """Fetches GTFS-Realtime VehiclePositions and TripUpdates feeds over HTTP.

    Env vars:
      - GTFS_RT_VEHICLE_POSITIONS_URL: VehiclePositions feed URL
      - GTFS_RT_TRIP_UPDATES_URL: TripUpdates feed URL
      - GTFS_RT_HEADERS: optional headers, as 'Key:Value;Key2:Value2'
      - GTFS_RT_TIMEOUT_S: request timeout (default 15)
      - GTFS_RT_FORMAT: auto|json|protobuf (default auto)

    Notes:
      - No caching here; the poller decides when to fetch.
      - Every failure surfaces as RealtimeFeedError.
    """

    vehicle_positions_url: str | None = None
    trip_updates_url: str | None = None
    headers_raw: str | None = None
    timeout_s: float = 15.0
    feed_format: str | None = None

    def __post_init__(self) -> None:
        if self.vehicle_positions_url is None:
            self.vehicle_positions_url = os.getenv(
                "GTFS_RT_VEHICLE_POSITIONS_URL", DEFAULT_VEHICLE_POSITIONS_URL
            )
        if self.trip_updates_url is None:
            self.trip_updates_url = os.getenv(
                "GTFS_RT_TRIP_UPDATES_URL", DEFAULT_TRIP_UPDATES_URL
            )
        if self.headers_raw is None:
            self.headers_raw = os.getenv("GTFS_RT_HEADERS")
        if self.feed_format is None:
            self.feed_format = os.getenv("GTFS_RT_FORMAT", "auto")
        if os.getenv("GTFS_RT_TIMEOUT_S"):
            self.timeout_s = float(os.environ["GTFS_RT_TIMEOUT_S"])

    def _headers(self) -> dict[str, str]:
        raw = (self.headers_raw or "").strip()
        if not raw:
            return {}
        headers: dict[str, str] = {}
        for part in raw.split(";"):
            if ":" not in part:
                continue
            k, v = part.split(":", 1)
            k = k.strip()
            if k:
                headers[k] = v.strip()
        return headers

    async def _fetch_entities(
        self, url: str | None, label: str
    ) -> list[Mapping[str, Any]]:
        if not url:
            raise RealtimeFeedError(f"{label} URL not configured")

        try:
            async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                resp = await client.get(url, headers=self._headers())
                resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise RealtimeFeedError(
                f"{label} feed error: {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise RealtimeFeedError(f"{label} feed request failed: {exc}") from exc

        return decode_feed(
            resp.content,
            content_type=resp.headers.get("content-type", ""),
            feed_format=self.feed_format or "auto",
        )

    async def fetch_vehicle_positions(self) -> tuple[RawVehiclePosition, ...]:
        entities = await self._fetch_entities(
            self.vehicle_positions_url, "Vehicle Positions"
        )
        parsed = (parse_vehicle_position(e) for e in entities)
        return tuple(p for p in parsed if p is not None)

    async def fetch_trip_updates(self) -> tuple[RawTripUpdate, ...]:
        entities = await self._fetch_entities(self.trip_updates_url, "Trip Updates")
        parsed = (parse_trip_update(e) for e in entities)
        return tuple(p for p in parsed if p is not None)
