from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from src.domain.exceptions import StoreNotLoadedError
from src.domain.models import GtfsStore, HeadwayResult, OnwardCall, Vehicle


@dataclass(frozen=True, slots=True)
class LiveSnapshot:
    """Everything one successful poll cycle produced."""

    vehicles: tuple[Vehicle, ...]
    headways: tuple[HeadwayResult, ...]
    fetched_at: datetime
    onward_calls_by_vehicle: dict[str, tuple[OnwardCall, ...]] = field(
        default_factory=dict
    )


@dataclass(slots=True)
class HeadwayState:
    """Owned state shared by the poller (writer) and the read side.

    The store is set once after the static feed loads. Snapshots are replaced
    wholesale by reference assignment, so readers always see one complete
    cycle.
    """

    store: GtfsStore | None = None
    snapshot: LiveSnapshot | None = None
    consecutive_failures: int = 0
    max_consecutive_failures: int = 3
    load_error: str | None = None

    @property
    def is_loaded(self) -> bool:
        return self.store is not None

    @property
    def is_stale(self) -> bool:
        return self.consecutive_failures >= self.max_consecutive_failures

    def require_store(self) -> GtfsStore:
        if self.store is None:
            raise StoreNotLoadedError("GTFS data not yet loaded")
        return self.store

    def publish(self, snapshot: LiveSnapshot) -> None:
        self.snapshot = snapshot
        self.consecutive_failures = 0
