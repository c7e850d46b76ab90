"""Static GTFS archive download and validation."""

from __future__ import annotations

import hashlib
import io
import zipfile
from pathlib import Path
from typing import NamedTuple

from commuter_api.logging import get_logger
from commuter_api.services.http_fetch import DownloadError, download

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SEC = 60
DEFAULT_MAX_RETRIES = 2
DEFAULT_BACKOFF_BASE = 2.0

ZIP_MAGIC = b"PK\x03\x04"


class FetchError(DownloadError):
    """Raised when the timetable archive cannot be downloaded."""


class InvalidZipError(Exception):
    """Raised when fetched content is not a ZIP archive."""


class GtfsArchive(NamedTuple):
    data: bytes
    feed_hash: str

    @classmethod
    def from_bytes(cls, data: bytes) -> GtfsArchive:
        validate_zip(data)
        return cls(data, hashlib.sha256(data).hexdigest())


def validate_zip(data: bytes) -> None:
    """Reject anything that is not a readable ZIP archive.

    Raises:
        InvalidZipError: If the magic bytes or central directory are wrong.
    """
    if data[:4] != ZIP_MAGIC or not zipfile.is_zipfile(io.BytesIO(data)):
        msg = "Downloaded content is not a valid ZIP file"
        raise InvalidZipError(msg)


class GtfsStaticFetcher:
    """Loads the timetable archive from the operator's URL or a local file."""

    def __init__(
        self,
        timeout_sec: int = DEFAULT_TIMEOUT_SEC,
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff_base: float = DEFAULT_BACKOFF_BASE,
    ) -> None:
        self.timeout_sec = timeout_sec
        self.max_retries = max_retries
        self.backoff_base = backoff_base

    async def fetch_remote(self, url: str) -> GtfsArchive:
        """Download and validate the archive.

        Network and HTTP failures are retried; an invalid archive is not.

        Raises:
            FetchError: If every attempt failed.
            InvalidZipError: If the body is not a ZIP archive.
        """
        data = await download(
            url,
            label="GTFS feed",
            timeout_sec=self.timeout_sec,
            max_retries=self.max_retries,
            backoff_base=self.backoff_base,
            error_cls=FetchError,
        )
        archive = GtfsArchive.from_bytes(data)
        logger.info("Timetable archive fetched", url=url, feed_hash=archive.feed_hash)
        return archive

    def fetch_local(self, path: str | Path) -> GtfsArchive:
        """Read a timetable archive bundled with the deployment.

        Raises:
            FileNotFoundError: If the file does not exist.
            InvalidZipError: If the file is not a ZIP archive.
        """
        path = Path(path)
        if not path.is_file():
            msg = f"Local GTFS file not found: {path}"
            raise FileNotFoundError(msg)

        archive = GtfsArchive.from_bytes(path.read_bytes())
        logger.info(
            "Timetable archive read from disk",
            path=str(path),
            size_bytes=len(archive.data),
            feed_hash=archive.feed_hash,
        )
        return archive
