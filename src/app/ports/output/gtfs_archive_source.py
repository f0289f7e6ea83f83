from __future__ import annotations

from abc import ABC, abstractmethod


class IGtfsArchiveSource(ABC):
    """Port for obtaining the raw bytes of a static GTFS zip archive."""

    @abstractmethod
    def fetch_archive(self) -> bytes:
        raise NotImplementedError
