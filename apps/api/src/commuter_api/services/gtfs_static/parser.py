"""Streaming CSV rows out of timetable tables, header-checked first."""

from __future__ import annotations

import csv
from typing import TYPE_CHECKING, Any

from commuter_api.logging import get_logger
from commuter_api.models.timetable import WEEKDAY_COLUMNS

if TYPE_CHECKING:
    from collections.abc import Iterator

    from commuter_api.services.gtfs_static.reader import GtfsTableReader

logger = get_logger(__name__)

# Columns read downstream; any others in a table are passed through untouched
REQUIRED_COLUMNS: dict[str, frozenset[str]] = {
    "stop_times.txt": frozenset(
        {"trip_id", "arrival_time", "departure_time", "stop_id", "stop_sequence"}
    ),
    "trips.txt": frozenset({"route_id", "service_id", "trip_id", "direction_id"}),
    "calendar.txt": frozenset({"service_id", "start_date", "end_date", *WEEKDAY_COLUMNS}),
    "calendar_dates.txt": frozenset({"service_id", "date", "exception_type"}),
}


class MissingColumnError(Exception):
    """Raised when a required CSV column is missing."""


class GtfsParser:
    def __init__(self, reader: GtfsTableReader) -> None:
        self._reader = reader

    def parse_file(self, filename: str) -> Iterator[dict[str, Any]]:
        """Yield each row of ``filename`` as a dict keyed by stripped header names.

        The header is validated on first iteration, before any row is yielded.

        Raises:
            MissingColumnError: If the table has no header or lacks a required column.
        """
        rows = csv.DictReader(self._reader.open_file(filename), skipinitialspace=True)
        header = rows.fieldnames
        if not header:
            msg = f"Empty CSV file: {filename}"
            raise MissingColumnError(msg)

        rows.fieldnames = [column.strip() for column in header]
        missing = REQUIRED_COLUMNS.get(filename, frozenset()).difference(rows.fieldnames)
        if missing:
            msg = f"Missing required columns in {filename}: {sorted(missing)}"
            raise MissingColumnError(msg)

        logger.debug("Reading timetable table", table=filename, columns=len(rows.fieldnames))
        yield from rows

    def parse_trips(self) -> Iterator[dict[str, Any]]:
        return self.parse_file("trips.txt")

    def parse_stop_times(self) -> Iterator[dict[str, Any]]:
        return self.parse_file("stop_times.txt")

    def parse_calendar(self) -> Iterator[dict[str, Any]]:
        return self.parse_file("calendar.txt")

    def parse_calendar_dates(self) -> Iterator[dict[str, Any]]:
        return self.parse_file("calendar_dates.txt")
