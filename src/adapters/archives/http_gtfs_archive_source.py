from __future__ import annotations

import os
from dataclasses import dataclass

import httpx

from src.app.ports.output import IGtfsArchiveSource
from src.domain.exceptions import GtfsLoadError

DEFAULT_GTFS_URL = "https://metro.kingcounty.gov/GTFS/google_transit.zip"


@dataclass(slots=True)
class HttpGtfsArchiveSource(IGtfsArchiveSource):
    """Downloads the static GTFS archive over HTTP.

    Env vars:
      - GTFS_URL: archive URL (default: King County Metro)
      - GTFS_DOWNLOAD_TIMEOUT_S: request timeout (default 120)
    """

    url: str | None = None
    timeout_s: float = 120.0

    def __post_init__(self) -> None:
        if self.url is None:
            self.url = os.getenv("GTFS_URL") or DEFAULT_GTFS_URL
        if os.getenv("GTFS_DOWNLOAD_TIMEOUT_S"):
            self.timeout_s = float(os.environ["GTFS_DOWNLOAD_TIMEOUT_S"])

    def fetch_archive(self) -> bytes:
        try:
            with httpx.Client(timeout=self.timeout_s, follow_redirects=True) as client:
                resp = client.get(str(self.url))
                resp.raise_for_status()
                return resp.content
        except httpx.HTTPError as exc:
            raise GtfsLoadError(f"Downloading {self.url} failed: {exc}") from exc
