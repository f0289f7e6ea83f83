from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime

import pytest

from src.app.services.headway_poller import HeadwayPoller
from src.app.services.headway_state import HeadwayState
from src.domain.exceptions import RealtimeFeedError
from src.domain.models import (
    GtfsStore,
    RawStopTimeUpdate,
    RawTripUpdate,
    RawVehiclePosition,
)


@dataclass(slots=True)
class FakeFeedProvider:
    positions: tuple[RawVehiclePosition, ...] = ()
    trip_updates: tuple[RawTripUpdate, ...] = ()
    error: Exception | None = None
    delay_s: float = 0.0
    calls: int = 0

    async def fetch_vehicle_positions(self) -> tuple[RawVehiclePosition, ...]:
        self.calls += 1
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if self.error is not None:
            raise self.error
        return self.positions

    async def fetch_trip_updates(self) -> tuple[RawTripUpdate, ...]:
        return self.trip_updates


@dataclass(slots=True)
class GatedFeedProvider:
    gate: asyncio.Event = field(default_factory=asyncio.Event)

    async def fetch_vehicle_positions(self) -> tuple[RawVehiclePosition, ...]:
        await self.gate.wait()
        return ()

    async def fetch_trip_updates(self) -> tuple[RawTripUpdate, ...]:
        return ()


def _positions() -> tuple[RawVehiclePosition, ...]:
    return (
        RawVehiclePosition(entity_id="1", trip_id="T1", vehicle_id="A", lat=47.615, lon=-122.33),
        RawVehiclePosition(entity_id="2", trip_id="T2", vehicle_id="B", lat=47.605, lon=-122.33),
    )


def _poller(state: HeadwayState, provider, now: datetime, **kwargs) -> HeadwayPoller:
    return HeadwayPoller(state=state, feed_provider=provider, clock=lambda: now, **kwargs)


def test_successful_cycle_publishes_snapshot(
    store: GtfsStore, weekday_morning: datetime
) -> None:
    state = HeadwayState(store=store, consecutive_failures=2)
    trip_updates = (
        RawTripUpdate(
            trip_id="T1",
            stop_time_updates=(RawStopTimeUpdate(stop_sequence=2, stop_id="S3"),),
        ),
    )
    poller = _poller(
        state, FakeFeedProvider(_positions(), trip_updates), weekday_morning
    )

    assert asyncio.run(poller.poll_once()) is True

    snapshot = state.snapshot
    assert snapshot is not None
    assert snapshot.fetched_at == weekday_morning
    assert {v.vehicle_ref for v in snapshot.vehicles} == {"A", "B"}
    assert [h.vehicle_ref for h in snapshot.headways] == ["A", "B"]
    assert snapshot.headways[1].leader_ref == "A"
    assert "A" in snapshot.onward_calls_by_vehicle
    assert state.consecutive_failures == 0


def test_failed_cycle_keeps_previous_snapshot(
    store: GtfsStore, weekday_morning: datetime, caplog: pytest.LogCaptureFixture
) -> None:
    state = HeadwayState(store=store, max_consecutive_failures=3)
    provider = FakeFeedProvider(_positions())
    poller = _poller(state, provider, weekday_morning)

    asyncio.run(poller.poll_once())
    published = state.snapshot

    provider.error = RealtimeFeedError("Vehicle Positions feed error: 503")
    with caplog.at_level(logging.WARNING):
        results = [asyncio.run(poller.poll_once()) for _ in range(3)]

    assert results == [False, False, False]
    assert state.snapshot is published
    assert state.consecutive_failures == 3
    assert state.is_stale
    assert "serving stale data" in caplog.text


def test_slow_feed_times_out_as_failure(
    store: GtfsStore, weekday_morning: datetime
) -> None:
    state = HeadwayState(store=store)
    poller = _poller(
        state,
        FakeFeedProvider(_positions(), delay_s=1.0),
        weekday_morning,
        fetch_timeout_s=0.01,
    )

    assert asyncio.run(poller.poll_once()) is False
    assert state.snapshot is None
    assert state.consecutive_failures == 1


def test_cycle_without_store_is_a_failure(weekday_morning: datetime) -> None:
    state = HeadwayState()
    provider = FakeFeedProvider(_positions())
    poller = _poller(state, provider, weekday_morning)

    assert asyncio.run(poller.poll_once()) is False
    assert provider.calls == 0
    assert state.consecutive_failures == 1


def test_overlapping_cycle_is_skipped(
    store: GtfsStore, weekday_morning: datetime
) -> None:
    async def scenario() -> tuple[bool, bool]:
        provider = GatedFeedProvider()
        state = HeadwayState(store=store)
        poller = _poller(state, provider, weekday_morning)

        first = asyncio.create_task(poller.poll_once())
        await asyncio.sleep(0)
        second = await poller.poll_once()
        provider.gate.set()
        return await first, second

    first, second = asyncio.run(scenario())

    assert first is True
    assert second is False


def test_run_polls_until_stopped(store: GtfsStore, weekday_morning: datetime) -> None:
    async def scenario() -> int:
        provider = FakeFeedProvider(_positions())
        poller = _poller(
            HeadwayState(store=store), provider, weekday_morning, poll_interval_s=0.01
        )
        poller.start()
        await asyncio.sleep(0.05)
        await poller.stop()
        return provider.calls

    assert asyncio.run(scenario()) >= 2
