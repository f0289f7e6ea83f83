class GtfsLoadError(Exception):
    """Base exception for static feed load failures."""


class MissingGtfsTableError(GtfsLoadError):
    """Raised when a required table is absent from the static feed."""

    def __init__(self, table: str) -> None:
        super().__init__(f"{table} not found in GTFS feed")
        self.table = table


class CorruptGtfsArchiveError(GtfsLoadError):
    """Raised when the static archive cannot be read as a zip file."""


class StoreNotLoadedError(RuntimeError):
    """Raised when schedule data is requested before the store is loaded."""


class UnknownTimezoneError(GtfsLoadError):
    """Raised when the configured feed timezone is not an IANA zone name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown feed timezone: {name!r}")
        self.name = name
