from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from src.adapters.persistence.gtfs_parsing import load_store_from_tables
from src.app.ports.output import IGtfsRepository
from src.domain.models import GtfsStore


@dataclass(slots=True)
class LocalGtfsRepository(IGtfsRepository):
    """Loads a GTFS feed from a directory of .txt files.

    Env vars:
      - GTFS_PATH: directory containing routes.txt, stops.txt, trips.txt, shapes.txt
        (stop_times.txt, frequencies.txt, calendar.txt, calendar_dates.txt optional)
      - FEED_TIMEZONE: overrides agency.txt agency_timezone
    """

    base_path: str | Path | None = None
    timezone: str | None = None

    def _base(self) -> Path:
        value = self.base_path or os.getenv("GTFS_PATH") or "data/gtfs"
        return Path(value)

    def _read_table(self, name: str) -> str | None:
        path = self._base() / name
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8-sig", errors="replace")

    def load_store(self) -> GtfsStore:
        return load_store_from_tables(
            self._read_table,
            timezone=self.timezone or os.getenv("FEED_TIMEZONE") or None,
        )
