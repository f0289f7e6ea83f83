from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Sequence

from src.app.ports.output import IRealtimeFeedProvider
from src.app.services.headway_state import HeadwayState, LiveSnapshot
from src.domain.algorithms.fusion import fuse_vehicles
from src.domain.algorithms.headway import (
    DEFAULT_BUS_SPEED_MPS,
    DEFAULT_MAX_HEADWAY_CAP_S,
    compute_headways,
)
from src.domain.models import GtfsStore, RawTripUpdate, RawVehiclePosition

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_snapshot(
    store: GtfsStore,
    positions: Sequence[RawVehiclePosition],
    trip_updates: Sequence[RawTripUpdate],
    now: datetime,
    *,
    max_headway_cap_s: float = DEFAULT_MAX_HEADWAY_CAP_S,
    speed_mps: float = DEFAULT_BUS_SPEED_MPS,
) -> LiveSnapshot:
    """Synchronous part of a cycle: fuse feeds, then compute headways."""

    fused = fuse_vehicles(positions, trip_updates, store)
    headways = compute_headways(
        fused.vehicles,
        fused.onward_calls_by_vehicle,
        store,
        now,
        max_headway_cap_s=max_headway_cap_s,
        speed_mps=speed_mps,
    )
    return LiveSnapshot(
        vehicles=fused.vehicles,
        headways=tuple(headways),
        fetched_at=now,
        onward_calls_by_vehicle=fused.onward_calls_by_vehicle,
    )


@dataclass(slots=True)
class HeadwayPoller:
    """Timer-driven fetch -> fuse -> compute -> publish loop.

    At most one cycle runs at a time; a tick that finds a cycle in flight is
    skipped. A failed cycle leaves the published snapshot untouched.
    """

    state: HeadwayState
    feed_provider: IRealtimeFeedProvider
    poll_interval_s: float = 60.0
    fetch_timeout_s: float = 15.0
    max_headway_cap_s: float = DEFAULT_MAX_HEADWAY_CAP_S
    speed_mps: float = DEFAULT_BUS_SPEED_MPS
    clock: Callable[[], datetime] = _utcnow

    _in_flight: bool = field(default=False, init=False, repr=False)
    _stop_event: asyncio.Event = field(
        default_factory=asyncio.Event, init=False, repr=False
    )
    _task: asyncio.Task[None] | None = field(default=None, init=False, repr=False)
    _cycle: asyncio.Task[bool] | None = field(default=None, init=False, repr=False)

    async def _fetch_feeds(
        self,
    ) -> tuple[tuple[RawVehiclePosition, ...], tuple[RawTripUpdate, ...]]:
        async with asyncio.timeout(self.fetch_timeout_s):
            async with asyncio.TaskGroup() as tg:
                positions = tg.create_task(self.feed_provider.fetch_vehicle_positions())
                trip_updates = tg.create_task(self.feed_provider.fetch_trip_updates())
        return positions.result(), trip_updates.result()

    async def poll_once(self) -> bool:
        """Run one cycle. Returns True if a new snapshot was published."""

        if self._in_flight:
            logger.warning("Previous poll cycle still in flight; skipping")
            return False

        self._in_flight = True
        try:
            store = self.state.require_store()
            positions, trip_updates = await self._fetch_feeds()

            now = self.clock()
            snapshot = build_snapshot(
                store,
                positions,
                trip_updates,
                now,
                max_headway_cap_s=self.max_headway_cap_s,
                speed_mps=self.speed_mps,
            )
            self.state.publish(snapshot)

            logger.info(
                "%s: %d vehicles, %d headways computed",
                now.isoformat(),
                len(snapshot.vehicles),
                len(snapshot.headways),
            )
            return True
        except Exception:
            self.state.consecutive_failures += 1
            failures = self.state.consecutive_failures
            logger.exception("Poll cycle failed (attempt %d)", failures)
            if failures >= self.state.max_consecutive_failures:
                logger.warning(
                    "%d consecutive failures; serving stale data", failures
                )
            return False
        finally:
            self._in_flight = False

    async def run(self) -> None:
        """Tick every `poll_interval_s` until stop() is called."""

        while not self._stop_event.is_set():
            if self._cycle is None or self._cycle.done():
                self._cycle = asyncio.create_task(self.poll_once())
            else:
                logger.warning("Poll cycle overran the interval; tick skipped")

            try:
                await asyncio.wait_for(
                    self._stop_event.wait(), timeout=self.poll_interval_s
                )
            except asyncio.TimeoutError:
                pass

    def start(self) -> asyncio.Task[None]:
        if self._task is None or self._task.done():
            self._stop_event.clear()
            self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self) -> None:
        self._stop_event.set()
        if self._task is not None:
            await self._task
            self._task = None
        if self._cycle is not None and not self._cycle.done():
            await self._cycle
