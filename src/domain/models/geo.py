from __future__ import annotations

import math
from dataclasses import dataclass


def is_usable_fix(lat: float | None, lon: float | None) -> bool:
    """Whether a reported vehicle position can be placed on the map.

    Upstream feeds report 0/0 (or a single zero axis) for vehicles without a
    GPS fix.
    """

    if lat is None or lon is None:
        return False
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return False
    if lat == 0.0 or lon == 0.0:
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0


@dataclass(frozen=True, slots=True)
class GeoPoint:
    lat: float
    lon: float

    def __post_init__(self) -> None:
        if not (-90.0 <= self.lat <= 90.0):
            raise ValueError(f"Invalid latitude: {self.lat}")
        if not (-180.0 <= self.lon <= 180.0):
            raise ValueError(f"Invalid longitude: {self.lon}")

    def as_lon_lat(self) -> list[float]:
        """GeoJSON position order."""

        return [self.lon, self.lat]
