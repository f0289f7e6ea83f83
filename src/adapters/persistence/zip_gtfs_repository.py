from __future__ import annotations

import logging
import os
import zipfile
import zlib
from dataclasses import dataclass
from pathlib import Path

from src.adapters.persistence.gtfs_parsing import load_store_from_tables
from src.app.ports.output import IGtfsArchiveSource, IGtfsRepository
from src.domain.exceptions import CorruptGtfsArchiveError
from src.domain.models import GtfsStore

logger = logging.getLogger(__name__)

_ARCHIVE_ERRORS = (zipfile.BadZipFile, zlib.error, OSError)


def _read_zip_table(zf: zipfile.ZipFile, name: str) -> str | None:
    for info in zf.infolist():
        if info.filename == name or info.filename.endswith(f"/{name}"):
            return zf.read(info).decode("utf-8-sig", errors="replace")
    return None


def _is_readable_zip(path: Path) -> bool:
    try:
        with zipfile.ZipFile(path):
            return True
    except (zipfile.BadZipFile, OSError):
        return False


@dataclass(slots=True)
class ZipGtfsRepository(IGtfsRepository):
    """Loads a GTFS feed from a zip archive cached on local disk.

    The archive is fetched through `archive_source` when no cached copy exists.
    A cached copy that cannot be opened, or whose members fail to decompress,
    is discarded and fetched again once.

    Env vars:
      - GTFS_DATA_DIR: cache directory (default: data/gtfs)
      - FEED_TIMEZONE: overrides agency.txt agency_timezone
    """

    archive_source: IGtfsArchiveSource
    data_dir: str | Path | None = None
    file_name: str = "gtfs.zip"
    timezone: str | None = None

    def archive_path(self) -> Path:
        base = self.data_dir or os.getenv("GTFS_DATA_DIR") or "data/gtfs"
        return Path(base) / self.file_name

    def _download(self, path: Path) -> None:
        logger.info("Downloading GTFS archive to %s", path)
        body = self.archive_source.fetch_archive()
        tmp = path.with_suffix(path.suffix + ".part")
        tmp.write_bytes(body)
        tmp.replace(path)
        logger.info("Downloaded GTFS archive (%d bytes)", len(body))

    def _discard(self, path: Path) -> None:
        path.unlink(missing_ok=True)
        # Mirrors (e.g. S3) must not keep serving the bad copy either.
        discard = getattr(self.archive_source, "discard", None)
        if callable(discard):
            discard()

    def _ensure_archive(self) -> tuple[Path, bool]:
        """Return the archive path and whether it was just downloaded."""

        path = self.archive_path()
        path.parent.mkdir(parents=True, exist_ok=True)

        if path.exists():
            if _is_readable_zip(path):
                logger.info("Using cached GTFS archive %s", path)
                return path, False
            logger.warning("Cached GTFS archive %s is corrupt; re-downloading", path)
            path.unlink(missing_ok=True)

        self._download(path)
        return path, True

    def _parse(self, path: Path) -> GtfsStore:
        logger.info("Parsing GTFS feed from %s", path)
        with zipfile.ZipFile(path) as zf:
            return load_store_from_tables(
                lambda name: _read_zip_table(zf, name),
                timezone=self.timezone or os.getenv("FEED_TIMEZONE") or None,
            )

    def load_store(self) -> GtfsStore:
        path, fresh = self._ensure_archive()

        try:
            return self._parse(path)
        except _ARCHIVE_ERRORS as exc:
            self._discard(path)
            if fresh:
                raise CorruptGtfsArchiveError(f"Invalid GTFS zip: {exc}") from exc
            # An intact directory can still hide damaged members.
            logger.warning(
                "Cached GTFS archive %s is damaged (%s); re-downloading", path, exc
            )

        self._download(path)
        try:
            return self._parse(path)
        except _ARCHIVE_ERRORS as exc:
            self._discard(path)
            raise CorruptGtfsArchiveError(f"Invalid GTFS zip: {exc}") from exc
