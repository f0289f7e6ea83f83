from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from botocore.exceptions import ClientError

from src.adapters.aws import s3_client
from src.app.ports.output import IGtfsArchiveSource

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class S3CachedGtfsArchiveSource(IGtfsArchiveSource):
    """Mirrors the static GTFS archive in S3.

    This is an adapter-level decorator around another IGtfsArchiveSource:
    reads come from the bucket first, misses are fetched upstream and written
    through.

    Env vars:
      - GTFS_ARCHIVE_BUCKET (required)
      - GTFS_ARCHIVE_KEY (default: gtfs/google_transit.zip)
      - ENDPOINT_URL (preferred for LocalStack)
    """

    upstream: IGtfsArchiveSource
    bucket: str | None = None
    key: str | None = None

    def _bucket(self) -> str:
        value = self.bucket or os.getenv("GTFS_ARCHIVE_BUCKET")
        if not value:
            raise RuntimeError("Missing GTFS_ARCHIVE_BUCKET")
        return value

    def _key(self) -> str:
        return (
            self.key or os.getenv("GTFS_ARCHIVE_KEY") or "gtfs/google_transit.zip"
        ).strip("/")

    def fetch_archive(self) -> bytes:
        s3 = s3_client()
        bucket = self._bucket()
        key = self._key()

        try:
            obj = s3.get_object(Bucket=bucket, Key=key)
            body = obj["Body"].read()
            logger.info("Loaded GTFS archive from s3://%s/%s", bucket, key)
            return body
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if code not in {"NoSuchKey", "404", "NoSuchBucket"}:
                raise

        body = self.upstream.fetch_archive()
        s3.put_object(Bucket=bucket, Key=key, Body=body)
        logger.info("Mirrored GTFS archive to s3://%s/%s", bucket, key)
        return body

    def discard(self) -> None:
        """Remove the mirrored copy so the next fetch goes upstream."""

        s3_client().delete_object(Bucket=self._bucket(), Key=self._key())
