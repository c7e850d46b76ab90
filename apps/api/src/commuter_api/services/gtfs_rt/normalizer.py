"""GTFS-RT normalizer: protobuf TripUpdate entities to plain records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from commuter_api.logging import get_logger

if TYPE_CHECKING:
    from google.transit import gtfs_realtime_pb2  # type: ignore[import-untyped]

logger = get_logger(__name__)

# TripDescriptor.ScheduleRelationship
TRIP_SCHEDULE_RELATIONSHIP = {
    0: "SCHEDULED",
    1: "ADDED",
    2: "UNSCHEDULED",
    3: "CANCELED",
    5: "REPLACEMENT",
    6: "DUPLICATED",
    7: "DELETED",
}

# TripUpdate.StopTimeUpdate.ScheduleRelationship
STOP_SCHEDULE_RELATIONSHIP = {
    0: "SCHEDULED",
    1: "SKIPPED",
    2: "NO_DATA",
    3: "UNSCHEDULED",
}

CANCEL_RELATIONSHIPS = frozenset({"SKIPPED", "CANCELED", "DELETED"})


@dataclass(frozen=True)
class StopTimeUpdate:
    stop_id: str
    stop_sequence: int
    arrival_delay: int | None = None
    arrival_time: int | None = None
    departure_delay: int | None = None
    departure_time: int | None = None
    schedule_relationship: str = "SCHEDULED"

    @property
    def is_cancelled(self) -> bool:
        return self.schedule_relationship in CANCEL_RELATIONSHIPS

    @property
    def delay_sec(self) -> int:
        """Departure delay, falling back to arrival delay, in seconds."""
        return self.departure_delay or self.arrival_delay or 0


@dataclass(frozen=True)
class TripUpdate:
    trip_id: str
    route_id: str = ""
    start_date: str = ""
    start_time: str = ""
    schedule_relationship: str = "SCHEDULED"
    stop_time_updates: tuple[StopTimeUpdate, ...] = ()

    @property
    def is_cancelled(self) -> bool:
        return self.schedule_relationship in CANCEL_RELATIONSHIPS


class GtfsRtNormalizer:
    """Normalizes decoded GTFS-RT entities into TripUpdate records."""

    @staticmethod
    def normalize_trip_updates(
        feed: gtfs_realtime_pb2.FeedMessage,
    ) -> list[TripUpdate]:
        """Normalize TripUpdate entities, one record per trip.

        Entities without a trip id are dropped.
        """
        updates: list[TripUpdate] = []

        for entity in feed.entity:
            if not entity.HasField("trip_update"):
                continue

            tu = entity.trip_update
            trip_id = tu.trip.trip_id if tu.trip.trip_id else ""
            if not trip_id:
                continue

            stop_updates = tuple(
                GtfsRtNormalizer._normalize_stop_time_update(stu) for stu in tu.stop_time_update
            )

            updates.append(
                TripUpdate(
                    trip_id=trip_id,
                    route_id=tu.trip.route_id or "",
                    start_date=tu.trip.start_date or "",
                    start_time=tu.trip.start_time or "",
                    schedule_relationship=TRIP_SCHEDULE_RELATIONSHIP.get(
                        tu.trip.schedule_relationship, "SCHEDULED"
                    ),
                    stop_time_updates=stop_updates,
                )
            )

        logger.debug("Normalized trip updates", count=len(updates))
        return updates

    @staticmethod
    def _normalize_stop_time_update(stu: object) -> StopTimeUpdate:
        has_arrival = stu.HasField("arrival")  # type: ignore[attr-defined]
        has_departure = stu.HasField("departure")  # type: ignore[attr-defined]
        arrival = stu.arrival  # type: ignore[attr-defined]
        departure = stu.departure  # type: ignore[attr-defined]

        return StopTimeUpdate(
            stop_id=stu.stop_id or "",  # type: ignore[attr-defined]
            stop_sequence=stu.stop_sequence or 0,  # type: ignore[attr-defined]
            arrival_delay=arrival.delay if has_arrival else None,
            arrival_time=arrival.time if has_arrival and arrival.time else None,
            departure_delay=departure.delay if has_departure else None,
            departure_time=departure.time if has_departure and departure.time else None,
            schedule_relationship=STOP_SCHEDULE_RELATIONSHIP.get(
                stu.schedule_relationship,  # type: ignore[attr-defined]
                "SCHEDULED",
            ),
        )
