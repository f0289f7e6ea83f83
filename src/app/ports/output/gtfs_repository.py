from __future__ import annotations

from abc import ABC, abstractmethod

from src.domain.models import GtfsStore


class IGtfsRepository(ABC):
    """Port for loading the static schedule feed into an in-memory store."""

    @abstractmethod
    def load_store(self) -> GtfsStore:
        """Parse and index the feed.

        Raises GtfsLoadError (or a subclass) when the feed is unusable.
        """
