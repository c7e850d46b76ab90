"""Parsed static timetable records.

All records are immutable once parsed. A ``Timetable`` is replaced wholesale
when the store refreshes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime

from commuter_api.models.enums import Direction, ServiceTier

# GTFS calendar_dates exception_type values
EXCEPTION_SERVICE_ADDED = 1
EXCEPTION_SERVICE_REMOVED = 2

WEEKDAY_COLUMNS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


@dataclass(frozen=True)
class StopTime:
    """One row of stop_times.txt.

    Times are kept as raw GTFS strings (hours may exceed 24) and parsed when
    a trip is instantiated for a concrete service date.
    """

    trip_id: str
    stop_id: str
    stop_sequence: int
    arrival_time: str
    departure_time: str


@dataclass(frozen=True)
class ScheduledTrip:
    trip_id: str
    route_id: str
    service_id: str
    train_number: str
    headsign: str
    direction: Direction
    stop_times: tuple[StopTime, ...] = ()

    def stop_time_at(self, stop_id: str) -> StopTime | None:
        for stop_time in self.stop_times:
            if stop_time.stop_id == stop_id:
                return stop_time
        return None

    @property
    def stop_count(self) -> int:
        return len(self.stop_times)


@dataclass(frozen=True)
class CalendarService:
    """Weekly operating pattern bounded by an inclusive date range."""

    service_id: str
    weekdays: tuple[bool, bool, bool, bool, bool, bool, bool]  # Monday first
    start_date: date
    end_date: date

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def runs_on_weekday(self, day: date) -> bool:
        return self.weekdays[day.weekday()]


@dataclass(frozen=True)
class CalendarException:
    service_id: str
    date: date
    exception_type: int

    @property
    def is_added(self) -> bool:
        return self.exception_type == EXCEPTION_SERVICE_ADDED

    @property
    def is_removed(self) -> bool:
        return self.exception_type == EXCEPTION_SERVICE_REMOVED


@dataclass(frozen=True)
class Timetable:
    trips: dict[str, ScheduledTrip] = field(default_factory=dict)
    calendar: tuple[CalendarService, ...] = ()
    calendar_dates: tuple[CalendarException, ...] = ()
    source: str = "empty"

    @property
    def is_empty(self) -> bool:
        return not self.trips

    def trips_for_service(self, service_id: str) -> list[ScheduledTrip]:
        return [trip for trip in self.trips.values() if trip.service_id == service_id]

    def stop_count(self, trip_id: str) -> int:
        trip = self.trips.get(trip_id)
        return trip.stop_count if trip else 0

    @property
    def stop_time_count(self) -> int:
        return sum(trip.stop_count for trip in self.trips.values())


@dataclass(frozen=True)
class TrainCandidate:
    """A trip instantiated for one origin/destination pair on a concrete date.

    ``departure`` and ``arrival`` are scheduled instants; delays are applied
    only when the train is reconciled.
    """

    train_number: str
    trip_id: str | None
    direction: Direction
    departure: datetime
    arrival: datetime
    tier: ServiceTier

    @property
    def duration_minutes(self) -> int:
        return round((self.arrival - self.departure).total_seconds() / 60)
