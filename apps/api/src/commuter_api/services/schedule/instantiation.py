"""Schedule instantiation: timetable trips to concrete upcoming trains."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING

from commuter_api.config import get_settings
from commuter_api.logging import get_logger
from commuter_api.models.delays import ReconciledTrain
from commuter_api.models.enums import Direction, ServiceTier
from commuter_api.models.timetable import TrainCandidate
from commuter_api.services.gtfs_static.normalizer import TimeParseError, split_gtfs_time
from commuter_api.stations import gtfs_stop_id, require_station, station_index
from commuter_api.timeutil import local_civil_instant, local_service_date, to_local

if TYPE_CHECKING:
    from zoneinfo import ZoneInfo

    from commuter_api.services.gtfs_static.store import TimetableStore
    from commuter_api.services.reconciliation.engine import DelayReconciler

logger = get_logger(__name__)

# Stop counts along the whole line; lower bounds are inclusive
LOCAL_MIN_STOPS = 20
LIMITED_MIN_STOPS = 13


class InvalidRouteError(ValueError):
    """Raised when origin and destination do not describe a journey."""


def classify_service_tier(stop_count: int) -> ServiceTier:
    if stop_count >= LOCAL_MIN_STOPS:
        return ServiceTier.LOCAL
    if stop_count >= LIMITED_MIN_STOPS:
        return ServiceTier.LIMITED
    return ServiceTier.EXPRESS


def resolve_direction(origin_id: str, destination_id: str) -> Direction:
    """Direction of travel from the stations' north-to-south positions.

    Raises:
        UnknownStationError: If either station is not on the line.
        InvalidRouteError: If origin and destination are the same station.
    """
    origin = station_index(origin_id)
    destination = station_index(destination_id)
    if origin == destination:
        raise InvalidRouteError("Origin and destination must differ")
    return Direction.NORTHBOUND if origin > destination else Direction.SOUTHBOUND


def instantiate_gtfs_time(service_date: date, value: str, tz: ZoneInfo | None = None) -> datetime:
    """Absolute instant for a raw GTFS time on a service date.

    Raises:
        TimeParseError: If ``value`` is not a valid GTFS time.
    """
    hours, minutes, seconds = split_gtfs_time(value)
    return local_civil_instant(service_date, hours, minutes, seconds, tz)


class ScheduleEngine:
    """Turns the static timetable into the next few trains for a station pair."""

    def __init__(
        self,
        store: TimetableStore,
        *,
        max_trains: int | None = None,
        tz: ZoneInfo | None = None,
    ) -> None:
        self.store = store
        self.max_trains = max_trains or get_settings().max_trains_returned
        self._tz = tz

    def scheduled_trains(
        self,
        origin_id: str,
        destination_id: str,
        as_of: datetime,
        reconciler: DelayReconciler,
    ) -> list[ReconciledTrain]:
        """Nearest upcoming trains from origin to destination, reconciled.

        A malformed stop time anywhere in the candidate set aborts the whole
        computation and returns an empty list.

        Args:
            origin_id: Boarding station id.
            destination_id: Alighting station id.
            as_of: Query instant; naive values are operator-local.
            reconciler: Delay context for this request.

        Returns:
            Up to ``max_trains`` trains sorted by scheduled departure.
        """
        try:
            candidates = self.upcoming_candidates(origin_id, destination_id, as_of, reconciler)
        except TimeParseError as exc:
            logger.error(
                "Schedule instantiation failed",
                origin=origin_id,
                destination=destination_id,
                error=str(exc),
            )
            return []

        return reconciler.reconcile(candidates)

    def upcoming_candidates(
        self,
        origin_id: str,
        destination_id: str,
        as_of: datetime,
        reconciler: DelayReconciler,
    ) -> list[TrainCandidate]:
        direction = resolve_direction(origin_id, destination_id)
        as_of = to_local(as_of, self._tz)

        origin_stop = gtfs_stop_id(require_station(origin_id).code, direction)
        destination_stop = gtfs_stop_id(require_station(destination_id).code, direction)
        if origin_stop is None or destination_stop is None:
            logger.warning(
                "Station has no GTFS stop mapping", origin=origin_id, destination=destination_id
            )
            return []

        service_id = self.store.active_service_for(as_of)
        if service_id is None:
            logger.info("No active service", date=as_of.date().isoformat())
            return []

        service_date = local_service_date(as_of, self._tz)
        candidates: list[TrainCandidate] = []

        for trip in self.store.trips_for_service(service_id):
            if trip.direction is not direction:
                continue

            origin_time = trip.stop_time_at(origin_stop)
            destination_time = trip.stop_time_at(destination_stop)
            if origin_time is None or destination_time is None:
                continue

            departure = instantiate_gtfs_time(service_date, origin_time.departure_time, self._tz)
            arrival = instantiate_gtfs_time(service_date, destination_time.arrival_time, self._tz)

            # Departed check ignores synthetic delays
            resolution = reconciler.resolve(
                trip.trip_id, trip.train_number, direction, allow_synthetic=False
            )
            if departure + timedelta(minutes=resolution.delay_minutes) <= as_of:
                continue

            candidates.append(
                TrainCandidate(
                    train_number=trip.train_number,
                    trip_id=trip.trip_id,
                    direction=direction,
                    departure=departure,
                    arrival=arrival,
                    tier=classify_service_tier(trip.stop_count),
                )
            )

        candidates.sort(key=lambda candidate: candidate.departure)
        return candidates[: self.max_trains]
