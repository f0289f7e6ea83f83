from __future__ import annotations

from abc import ABC, abstractmethod

from src.domain.models import RawTripUpdate, RawVehiclePosition


class IRealtimeFeedProvider(ABC):
    """Port for the two live GTFS-Realtime feeds.

    Both calls raise RealtimeFeedError when the feed cannot be obtained.
    """

    @abstractmethod
    async def fetch_vehicle_positions(self) -> tuple[RawVehiclePosition, ...]:
        raise NotImplementedError

    @abstractmethod
    async def fetch_trip_updates(self) -> tuple[RawTripUpdate, ...]:
        raise NotImplementedError
