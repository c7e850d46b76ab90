"""Per-train delay reconciliation across feed sources.

Source priority, highest first; the first source that applies wins:

1. GTFS-RT trip update for the trip. An explicit zero is authoritative.
2. Train-specific text alert, only when its delay is positive.
3. First system-wide text alert whose direction matches the train, or
   applies to both directions.
4. Social feed post for the train number.
5. Nothing: on time, no attributed source.

When every source came back empty, delays are drawn from a synthetic
distribution and tagged as such.
"""

from __future__ import annotations

import random
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Protocol

from commuter_api.logging import get_logger
from commuter_api.models.delays import DelayObservation, ReconciledTrain
from commuter_api.models.enums import DelaySourceTag, Direction, TrainStatus
from commuter_api.models.timetable import TrainCandidate
from commuter_api.services.gtfs_rt.delays import find_trip_delay
from commuter_api.services.gtfs_rt.normalizer import TripUpdate

logger = get_logger(__name__)

SYNTHETIC_ON_TIME_SHARE = 0.70
SYNTHETIC_DELAYED_SHARE = 0.25
SYNTHETIC_MIN_DELAY = 3
SYNTHETIC_MAX_DELAY = 17


class DelaySource(Protocol):
    """Anything that yields normalized delay observations.

    Implementations must not raise; failures degrade to an empty list.
    """

    async def fetch_delays(self) -> list[DelayObservation]: ...


@dataclass(frozen=True)
class DelayResolution:
    delay_minutes: int = 0
    status: TrainStatus = TrainStatus.ON_TIME
    source: DelaySourceTag | None = None

    @property
    def is_synthetic(self) -> bool:
        return self.source is DelaySourceTag.SYNTHETIC


NO_DATA = DelayResolution()


@dataclass(frozen=True)
class DelayContext:
    """Everything the feed clients returned for one request."""

    trip_updates: tuple[TripUpdate, ...] = ()
    train_alert_delays: Mapping[str, DelayObservation] = field(default_factory=dict)
    system_wide_alerts: tuple[DelayObservation, ...] = ()
    social_delays: Mapping[str, DelayObservation] = field(default_factory=dict)

    @classmethod
    def from_sources(
        cls,
        trip_updates: Iterable[TripUpdate] = (),
        text_observations: Iterable[DelayObservation] = (),
        social_observations: Iterable[DelayObservation] = (),
    ) -> DelayContext:
        """Index raw observations by train number.

        When several text observations name the same train, the largest
        delay is kept. Social observations keep the first seen per train.
        """
        train_alerts: dict[str, DelayObservation] = {}
        system_wide: list[DelayObservation] = []
        for observation in text_observations:
            if observation.system_wide:
                system_wide.append(observation)
                continue
            key = observation.key
            if key is None:
                continue
            existing = train_alerts.get(key)
            if existing is None or observation.delay_minutes > existing.delay_minutes:
                train_alerts[key] = observation

        social: dict[str, DelayObservation] = {}
        for observation in social_observations:
            if observation.key is not None:
                social.setdefault(observation.key, observation)

        return cls(
            trip_updates=tuple(trip_updates),
            train_alert_delays=train_alerts,
            system_wide_alerts=tuple(system_wide),
            social_delays=social,
        )

    @property
    def has_any_data(self) -> bool:
        return bool(
            self.trip_updates
            or self.train_alert_delays
            or self.system_wide_alerts
            or self.social_delays
        )


class SyntheticDelaySource:
    """Demonstration delays: 70% on time, 25% delayed 3-17 min, 5% cancelled."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def draw(self) -> DelayResolution:
        roll = self._rng.random()
        if roll < SYNTHETIC_ON_TIME_SHARE:
            return DelayResolution(0, TrainStatus.ON_TIME, DelaySourceTag.SYNTHETIC)
        if roll < SYNTHETIC_ON_TIME_SHARE + SYNTHETIC_DELAYED_SHARE:
            minutes = self._rng.randint(SYNTHETIC_MIN_DELAY, SYNTHETIC_MAX_DELAY)
            return DelayResolution(minutes, TrainStatus.DELAYED, DelaySourceTag.SYNTHETIC)
        return DelayResolution(0, TrainStatus.CANCELLED, DelaySourceTag.SYNTHETIC)


class DelayReconciler:
    """Resolves one delay and status per train from a ``DelayContext``.

    Holds no state beyond the context for a single request.
    """

    def __init__(
        self,
        context: DelayContext,
        synthetic: SyntheticDelaySource | None = None,
    ) -> None:
        self.context = context
        self._synthetic = synthetic or SyntheticDelaySource()

    @property
    def synthetic(self) -> bool:
        """True when no source produced anything and delays are made up."""
        return not self.context.has_any_data

    def resolve(
        self,
        trip_id: str | None,
        train_number: str | None,
        direction: Direction,
        allow_synthetic: bool = True,
    ) -> DelayResolution:
        """Resolve the delay for one train.

        Args:
            trip_id: Static timetable trip id, used for the GTFS-RT match.
            train_number: Public train number, the join key for text sources.
            direction: Travel direction, used for system-wide alerts.
            allow_synthetic: When False, a context with no data resolves to
                no delay instead of a synthetic draw.

        Returns:
            The winning resolution. ``source`` is None when nothing applied.
        """
        context = self.context
        if not context.has_any_data:
            return self._synthetic.draw() if allow_synthetic else NO_DATA

        trip_delay = find_trip_delay(context.trip_updates, trip_id, train_number)
        if trip_delay is not None:
            return DelayResolution(
                trip_delay.delay_minutes, trip_delay.status, DelaySourceTag.GTFS_RT
            )

        if train_number:
            alert = context.train_alert_delays.get(train_number)
            if alert is not None and alert.delay_minutes > 0:
                return DelayResolution(
                    alert.delay_minutes, TrainStatus.DELAYED, DelaySourceTag.TEXT_ALERT
                )

        for alert in context.system_wide_alerts:
            if alert.direction in ("both", direction.alert_name):
                return DelayResolution(
                    alert.delay_minutes,
                    TrainStatus.DELAYED if alert.delay_minutes > 0 else TrainStatus.ON_TIME,
                    DelaySourceTag.SYSTEM_WIDE_ALERT,
                )

        if train_number:
            post = context.social_delays.get(train_number)
            if post is not None:
                return DelayResolution(post.delay_minutes, post.status, DelaySourceTag.SOCIAL_FEED)

        return NO_DATA

    def reconcile(self, candidates: Iterable[TrainCandidate]) -> list[ReconciledTrain]:
        """Attach a resolved delay to each candidate, preserving order."""
        reconciled: list[ReconciledTrain] = []
        for candidate in candidates:
            resolution = self.resolve(
                candidate.trip_id, candidate.train_number, candidate.direction
            )
            reconciled.append(
                ReconciledTrain(
                    train_number=candidate.train_number,
                    trip_id=candidate.trip_id,
                    direction=candidate.direction,
                    departure_time=candidate.departure.isoformat(),
                    arrival_time=candidate.arrival.isoformat(),
                    duration_minutes=candidate.duration_minutes,
                    tier=candidate.tier,
                    delay_minutes=resolution.delay_minutes,
                    status=resolution.status,
                    delay_source=resolution.source,
                )
            )

        if self.synthetic:
            logger.info(
                "No delay data from any source, using synthetic delays", trains=len(reconciled)
            )
        return reconciled
