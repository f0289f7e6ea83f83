from __future__ import annotations

import asyncio
from dataclasses import dataclass

from src.adapters.settings import HeadwayRuntimeConfig
from src.app.services.headway_state import HeadwayState
from src.app.services.headway_view_service import HeadwayViewService
from src.domain.exceptions import MissingGtfsTableError
from src.domain.models import GtfsStore, RawTripUpdate, RawVehiclePosition
from src.main import bootstrap


@dataclass(slots=True)
class FakeRepository:
    store: GtfsStore | None = None
    error: Exception | None = None

    def load_store(self) -> GtfsStore:
        if self.error is not None:
            raise self.error
        assert self.store is not None
        return self.store


@dataclass(slots=True)
class EmptyFeedProvider:
    calls: int = 0

    async def fetch_vehicle_positions(self) -> tuple[RawVehiclePosition, ...]:
        self.calls += 1
        return ()

    async def fetch_trip_updates(self) -> tuple[RawTripUpdate, ...]:
        return ()


def _config() -> HeadwayRuntimeConfig:
    return HeadwayRuntimeConfig(
        gtfs_path=None,
        gtfs_archive_bucket=None,
        poll_interval_s=60.0,
        fetch_timeout_s=5.0,
        max_consecutive_failures=3,
        max_headway_cap_s=1800.0,
        assumed_bus_speed_mps=5.0,
    )


def test_failed_load_keeps_process_up_without_polling() -> None:
    state = HeadwayState()
    provider = EmptyFeedProvider()
    repository = FakeRepository(error=MissingGtfsTableError("shapes.txt"))

    poller = asyncio.run(bootstrap(state, _config(), repository, provider))

    assert poller is None
    assert provider.calls == 0
    health = HeadwayViewService(state).health()
    assert health["status"] == "ok"
    assert health["gtfs_loaded"] is False
    assert health["load_error"] == "shapes.txt not found in GTFS feed"


def test_successful_load_starts_polling(store: GtfsStore) -> None:
    state = HeadwayState()
    provider = EmptyFeedProvider()

    async def scenario() -> None:
        poller = await bootstrap(state, _config(), FakeRepository(store=store), provider)
        assert poller is not None
        try:
            for _ in range(50):
                if state.snapshot is not None:
                    break
                await asyncio.sleep(0.01)
        finally:
            await poller.stop()

    asyncio.run(scenario())

    assert state.is_loaded
    assert state.load_error is None
    assert provider.calls >= 1
    assert state.snapshot is not None
    assert state.snapshot.vehicles == ()
