class RealtimeFeedError(Exception):
    """Raised when a live feed cannot be fetched or decoded."""
