"""Static timetable store: load, cache and query the GTFS schedule."""

from __future__ import annotations

import asyncio
import csv
import zipfile
from collections import defaultdict
from pathlib import Path
from typing import TYPE_CHECKING, Any

from commuter_api.cache import TtlCache
from commuter_api.config import get_settings
from commuter_api.logging import get_logger
from commuter_api.models.timetable import ScheduledTrip, StopTime, Timetable
from commuter_api.services.gtfs_static.fetcher import FetchError, GtfsStaticFetcher, InvalidZipError
from commuter_api.services.gtfs_static.normalizer import GtfsNormalizer, NormalizationError
from commuter_api.services.gtfs_static.parser import GtfsParser, MissingColumnError
from commuter_api.services.gtfs_static.reader import (
    GtfsDirectoryReader,
    GtfsTableReader,
    GtfsZipReader,
    MissingRequiredFileError,
)
from commuter_api.timeutil import local_service_date

if TYPE_CHECKING:
    from datetime import date, datetime
    from zoneinfo import ZoneInfo

logger = get_logger(__name__)

# Any of these means "this timetable source is unusable"
LOAD_ERRORS = (
    FetchError,
    InvalidZipError,
    MissingRequiredFileError,
    MissingColumnError,
    NormalizationError,
    zipfile.BadZipFile,
    csv.Error,
    UnicodeDecodeError,
    OSError,
)


def build_timetable(reader: GtfsTableReader, source: str) -> Timetable:
    """Parse and normalize the four required tables into a Timetable.

    Raises:
        MissingColumnError, NormalizationError: On any malformed table or row.
    """
    parser = GtfsParser(reader)
    normalizer = GtfsNormalizer()

    stop_times_by_trip: dict[str, list[StopTime]] = defaultdict(list)
    for row in parser.parse_stop_times():
        stop_time = normalizer.normalize_stop_time(row)
        stop_times_by_trip[stop_time.trip_id].append(stop_time)

    trips: dict[str, ScheduledTrip] = {}
    for row in parser.parse_trips():
        trip = normalizer.normalize_trip(row)
        stop_times = sorted(
            stop_times_by_trip.get(trip["trip_id"], []), key=lambda st: st.stop_sequence
        )
        trips[trip["trip_id"]] = ScheduledTrip(stop_times=tuple(stop_times), **trip)

    calendar = tuple(normalizer.normalize_calendar(row) for row in parser.parse_calendar())
    calendar_dates = tuple(
        normalizer.normalize_calendar_date(row) for row in parser.parse_calendar_dates()
    )

    timetable = Timetable(
        trips=trips,
        calendar=calendar,
        calendar_dates=calendar_dates,
        source=source,
    )
    logger.info(
        "GTFS timetable parsed",
        source=source,
        trips=len(trips),
        stop_times=timetable.stop_time_count,
        calendar_rows=len(calendar),
        calendar_exceptions=len(calendar_dates),
    )
    return timetable


def load_timetable_from_zip(data: bytes, source: str = "remote") -> Timetable:
    with GtfsZipReader(data) as reader:
        return build_timetable(reader, source=source)


def load_timetable_from_dir(path: str | Path) -> Timetable:
    with GtfsDirectoryReader(path) as reader:
        return build_timetable(reader, source="local")


class TimetableStore:
    """Owns the parsed timetable for the lifetime of its cache entry.

    Usage:
        store = TimetableStore()
        if await store.ensure_loaded():
            service_id = store.active_service_for(now)
    """

    def __init__(
        self,
        *,
        remote_url: str | None = None,
        local_dir: str | Path | None = None,
        ttl_sec: float | None = None,
        fetcher: GtfsStaticFetcher | None = None,
        cache: TtlCache[Timetable] | None = None,
        tz: ZoneInfo | None = None,
    ) -> None:
        settings = get_settings()
        self.remote_url = remote_url if remote_url is not None else settings.gtfs_static_url
        self.local_dir = Path(local_dir if local_dir is not None else settings.gtfs_local_dir)
        self._fetcher = fetcher or GtfsStaticFetcher(
            timeout_sec=settings.gtfs_static_timeout_sec,
            max_retries=settings.gtfs_static_max_retries,
        )
        self._cache: TtlCache[Timetable] = cache or TtlCache(
            ttl_sec if ttl_sec is not None else settings.timetable_ttl_sec
        )
        self._timetable = Timetable()
        self._tz = tz

    @property
    def timetable(self) -> Timetable:
        return self._timetable

    @property
    def cache(self) -> TtlCache[Timetable]:
        return self._cache

    async def ensure_loaded(self) -> bool:
        """Make sure a timetable younger than the TTL is held.

        Tries the remote archive, then the local fallback directory. When both
        fail the store holds empty tables and returns False; callers treat
        that as "no schedule available".
        """
        cached = self._cache.get()
        if cached is not None:
            self._timetable = cached
            return True

        timetable = await self._load_remote()
        if timetable is None:
            timetable = await self._load_local()

        if timetable is None:
            self._timetable = Timetable()
            logger.error("No GTFS timetable available from remote or local sources")
            return False

        self._timetable = timetable
        self._cache.set(timetable)
        return True

    async def _load_remote(self) -> Timetable | None:
        if not self.remote_url:
            return None
        try:
            data, _ = await self._fetcher.fetch_remote(self.remote_url)
            return await asyncio.to_thread(load_timetable_from_zip, data)
        except LOAD_ERRORS as exc:
            logger.warning(
                "Remote GTFS load failed, trying local files",
                url=self.remote_url,
                error=str(exc),
            )
            return None

    async def _load_local(self) -> Timetable | None:
        """Load the fallback tables from a directory, or from a local ``.zip`` archive."""
        try:
            if self.local_dir.suffix == ".zip":
                data, _ = self._fetcher.fetch_local(self.local_dir)
                return await asyncio.to_thread(load_timetable_from_zip, data, "local")
            return await asyncio.to_thread(load_timetable_from_dir, self.local_dir)
        except LOAD_ERRORS as exc:
            logger.error("Local GTFS load failed", path=str(self.local_dir), error=str(exc))
            return None

    def active_service_for(self, instant: datetime) -> str | None:
        """Resolve the calendar service operating on the instant's local date.

        An explicit "service added" exception on that exact date wins
        outright. Otherwise the first calendar row whose range contains the
        date and whose weekly pattern includes the weekday is used, skipping
        rows removed for that date. None means no service operates.
        """
        return resolve_active_service(self._timetable, local_service_date(instant, self._tz))

    def trips_for_service(self, service_id: str) -> list[ScheduledTrip]:
        return self._timetable.trips_for_service(service_id)

    def status(self) -> dict[str, Any]:
        fetched_at = self._cache.fetched_at
        return {
            "source": self._timetable.source,
            "trips": len(self._timetable.trips),
            "stopTimes": self._timetable.stop_time_count,
            "fetchedAt": fetched_at.isoformat() if fetched_at else None,
            "fresh": self._cache.is_fresh(),
        }


def resolve_active_service(timetable: Timetable, day: date) -> str | None:
    for exception in timetable.calendar_dates:
        if exception.date == day and exception.is_added:
            return exception.service_id

    removed = {
        exception.service_id
        for exception in timetable.calendar_dates
        if exception.date == day and exception.is_removed
    }

    for service in timetable.calendar:
        if not service.covers(day):
            continue
        if service.service_id in removed:
            continue
        if service.runs_on_weekday(day):
            return service.service_id

    return None
