"""Row-level cleanup of timetable CSV tables into typed records."""

from __future__ import annotations

import re
from datetime import date
from typing import Any

from commuter_api.models.enums import Direction
from commuter_api.models.timetable import (
    EXCEPTION_SERVICE_ADDED,
    EXCEPTION_SERVICE_REMOVED,
    WEEKDAY_COLUMNS,
    CalendarException,
    CalendarService,
    StopTime,
)

# Hours are unbounded: trips running past midnight use 24:xx, 25:xx, ...
GTFS_TIME_RE = re.compile(r"^(\d+):(\d{2}):(\d{2})$")
GTFS_DATE_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})$")


class TimeParseError(Exception):
    """Raised when a GTFS time string cannot be parsed."""


class NormalizationError(Exception):
    """Raised when a row cannot be normalized."""


def _field(row: dict[str, Any], name: str) -> str:
    value = row.get(name)
    return "" if value is None else str(value).strip()


def _require(row: dict[str, Any], name: str, where: str) -> str:
    value = _field(row, name)
    if not value:
        raise NormalizationError(f"Missing {name} in {where}")
    return value


def _to_int(value: str, name: str, where: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise NormalizationError(f"Invalid {name}={value!r} in {where}") from exc


class GtfsNormalizer:
    """One method per timetable table; each takes a raw CSV row."""

    @staticmethod
    def normalize_trip(row: dict[str, Any]) -> dict[str, Any]:
        """trips.txt row to a dict keyed trip_id, route_id, service_id,
        train_number, headsign and direction.

        The public train number is ``trip_short_name``, or the trip id when a
        feed leaves it blank.
        """
        trip_id = _require(row, "trip_id", "trips.txt")
        where = f"trips.txt trip_id={trip_id}"
        route_id = _require(row, "route_id", where)
        service_id = _require(row, "service_id", where)

        raw_direction = _field(row, "direction_id")
        try:
            direction = Direction.from_gtfs(raw_direction)
        except ValueError as exc:
            msg = f"Invalid direction_id={raw_direction!r} in {where}"
            raise NormalizationError(msg) from exc

        return {
            "trip_id": trip_id,
            "route_id": route_id,
            "service_id": service_id,
            "train_number": _field(row, "trip_short_name") or trip_id,
            "headsign": _field(row, "trip_headsign"),
            "direction": direction,
        }

    @staticmethod
    def normalize_stop_time(row: dict[str, Any]) -> StopTime:
        """stop_times.txt row to a StopTime.

        Times stay as strings; they only become instants once a service date
        is known. A missing arrival or departure borrows the other one.
        """
        trip_id = _require(row, "trip_id", "stop_times.txt")
        where = f"stop_times.txt trip_id={trip_id}"
        stop_id = _require(row, "stop_id", where)
        sequence = _to_int(_require(row, "stop_sequence", where), "stop_sequence", where)

        arrival = _field(row, "arrival_time")
        departure = _field(row, "departure_time")
        if not (arrival or departure):
            raise NormalizationError(
                f"Missing arrival/departure time in {where} stop_sequence={sequence}"
            )

        return StopTime(
            trip_id=trip_id,
            stop_id=stop_id,
            stop_sequence=sequence,
            arrival_time=arrival or departure,
            departure_time=departure or arrival,
        )

    @staticmethod
    def normalize_calendar(row: dict[str, Any]) -> CalendarService:
        service_id = _require(row, "service_id", "calendar.txt")
        return CalendarService(
            service_id=service_id,
            weekdays=tuple(  # type: ignore[arg-type]
                _field(row, day) == "1" for day in WEEKDAY_COLUMNS
            ),
            start_date=parse_gtfs_date(_field(row, "start_date")),
            end_date=parse_gtfs_date(_field(row, "end_date")),
        )

    @staticmethod
    def normalize_calendar_date(row: dict[str, Any]) -> CalendarException:
        """calendar_dates.txt row; exception_type must be 1 (added) or 2 (removed)."""
        service_id = _require(row, "service_id", "calendar_dates.txt")
        where = f"calendar_dates.txt service_id={service_id}"
        exception_type = _to_int(_field(row, "exception_type"), "exception_type", where)
        if exception_type not in (EXCEPTION_SERVICE_ADDED, EXCEPTION_SERVICE_REMOVED):
            raise NormalizationError(f"Unknown exception_type={exception_type} in {where}")

        return CalendarException(
            service_id=service_id,
            date=parse_gtfs_date(_field(row, "date")),
            exception_type=exception_type,
        )


def split_gtfs_time(time_str: str) -> tuple[int, int, int]:
    """``"HH:MM:SS"`` to (hours, minutes, seconds); hours may exceed 23.

    Raises:
        TimeParseError: On a malformed string or out-of-range minutes/seconds.
    """
    match = GTFS_TIME_RE.match(time_str.strip())
    if match is None:
        msg = f"Invalid GTFS time: {time_str!r} (expected HH:MM:SS)"
        raise TimeParseError(msg)

    hours, minutes, seconds = (int(part) for part in match.groups())
    if minutes > 59 or seconds > 59:
        msg = f"GTFS time out of range: {time_str!r}"
        raise TimeParseError(msg)
    return hours, minutes, seconds


def parse_gtfs_time(time_str: str) -> int:
    """Seconds after the service day's midnight, e.g. ``"25:01:30"`` -> 90090."""
    hours, minutes, seconds = split_gtfs_time(time_str)
    return hours * 3600 + minutes * 60 + seconds


def parse_gtfs_date(date_str: str) -> date:
    match = GTFS_DATE_RE.match(date_str)
    if match is None:
        raise NormalizationError(f"Invalid GTFS date: {date_str!r} (expected YYYYMMDD)")
    try:
        return date(*(int(part) for part in match.groups()))
    except ValueError as exc:
        raise NormalizationError(f"Invalid GTFS date: {date_str!r}") from exc
