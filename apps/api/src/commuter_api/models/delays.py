"""Delay observations and the reconciled per-train output."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from commuter_api.models.enums import DelaySourceTag, Direction, ServiceTier, TrainStatus

AlertDirection = Literal["northbound", "southbound", "both"]


@dataclass(frozen=True)
class DelayObservation:
    """A normalized delay fact from one source.

    Train-specific observations name a trip id and/or train number.
    System-wide observations name neither and may carry a direction filter
    and a free-text location hint.
    """

    source: DelaySourceTag
    delay_minutes: int
    status: TrainStatus = TrainStatus.DELAYED
    trip_id: str | None = None
    train_number: str | None = None
    system_wide: bool = False
    direction: AlertDirection = "both"
    location: str | None = None

    def __post_init__(self) -> None:
        if self.system_wide and (self.trip_id or self.train_number):
            raise ValueError("System-wide observations cannot name a specific train")
        if not self.system_wide and not (self.trip_id or self.train_number):
            raise ValueError("Train-specific observations need a trip id or train number")

    @property
    def key(self) -> str | None:
        """Join key used across text and social sources."""
        return self.train_number or self.trip_id


@dataclass(frozen=True)
class ReconciledTrain:
    """One upcoming train with its resolved delay and status."""

    train_number: str
    trip_id: str | None
    direction: Direction
    departure_time: str
    arrival_time: str
    duration_minutes: int
    tier: ServiceTier
    delay_minutes: int = 0
    status: TrainStatus = TrainStatus.ON_TIME
    delay_source: DelaySourceTag | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "trainNumber": self.train_number,
            "tripId": self.trip_id,
            "direction": self.direction.label,
            "departureTime": self.departure_time,
            "arrivalTime": self.arrival_time,
            "duration": self.duration_minutes,
            "type": self.tier.value,
            "delay": self.delay_minutes,
            "status": self.status.value,
            "delaySource": self.delay_source.value if self.delay_source else None,
        }
