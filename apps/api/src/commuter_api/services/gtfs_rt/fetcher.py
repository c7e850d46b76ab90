"""GTFS-RT snapshot download."""

from __future__ import annotations

from commuter_api.services.http_fetch import DownloadError, download

DEFAULT_TIMEOUT_SEC = 10
DEFAULT_MAX_RETRIES = 2
DEFAULT_BACKOFF_BASE = 2.0


class FeedFetchError(DownloadError):
    """Raised when a realtime feed cannot be downloaded."""


class GtfsRtFetcher:
    """Downloads protobuf snapshots. An empty body counts as a failed attempt."""

    def __init__(
        self,
        timeout_sec: int = DEFAULT_TIMEOUT_SEC,
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff_base: float = DEFAULT_BACKOFF_BASE,
    ) -> None:
        self.timeout_sec = timeout_sec
        self.max_retries = max_retries
        self.backoff_base = backoff_base

    async def fetch(self, url: str, feed_type: str = "trip_updates") -> bytes:
        """Raw protobuf bytes of one feed snapshot.

        Raises:
            FeedFetchError: If every attempt failed or came back empty.
        """
        return await download(
            url,
            label=feed_type,
            timeout_sec=self.timeout_sec,
            max_retries=self.max_retries,
            backoff_base=self.backoff_base,
            require_content=True,
            error_cls=FeedFetchError,
        )
