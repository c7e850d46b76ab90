"""Domain types for the commuter API."""

from commuter_api.models.delays import DelayObservation, ReconciledTrain
from commuter_api.models.enums import DelaySourceTag, Direction, ServiceTier, TrainStatus
from commuter_api.models.timetable import (
    CalendarException,
    CalendarService,
    ScheduledTrip,
    StopTime,
    Timetable,
    TrainCandidate,
)

__all__ = [
    "CalendarException",
    "CalendarService",
    "DelayObservation",
    "DelaySourceTag",
    "Direction",
    "ReconciledTrain",
    "ScheduledTrip",
    "ServiceTier",
    "StopTime",
    "Timetable",
    "TrainCandidate",
    "TrainStatus",
]
