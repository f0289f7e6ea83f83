from __future__ import annotations

import os
from dataclasses import dataclass


def env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    return float(raw)


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    return int(raw)


@dataclass(frozen=True, slots=True)
class HeadwayRuntimeConfig:
    """Process-level knobs for loading the schedule and polling live feeds."""

    gtfs_path: str | None
    gtfs_archive_bucket: str | None
    poll_interval_s: float
    fetch_timeout_s: float
    max_consecutive_failures: int
    max_headway_cap_s: float
    assumed_bus_speed_mps: float

    @staticmethod
    def from_env() -> "HeadwayRuntimeConfig":
        return HeadwayRuntimeConfig(
            gtfs_path=(os.getenv("GTFS_PATH") or "").strip() or None,
            gtfs_archive_bucket=(os.getenv("GTFS_ARCHIVE_BUCKET") or "").strip()
            or None,
            poll_interval_s=_env_float("POLL_INTERVAL_S", 60.0),
            fetch_timeout_s=_env_float("GTFS_RT_TIMEOUT_S", 15.0),
            max_consecutive_failures=_env_int("MAX_CONSECUTIVE_FAILURES", 3),
            max_headway_cap_s=_env_float("MAX_HEADWAY_CAP_S", 1800.0),
            assumed_bus_speed_mps=_env_float("ASSUMED_BUS_SPEED_MPS", 5.0),
        )
