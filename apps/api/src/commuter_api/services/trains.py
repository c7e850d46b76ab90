"""Train query orchestration: fan out to delay feeds, reconcile, schedule."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from commuter_api.cache import utc_now
from commuter_api.logging import get_logger
from commuter_api.models.delays import DelayObservation, ReconciledTrain
from commuter_api.models.enums import DelaySourceTag
from commuter_api.services.alerts.parser import parse_alerts_from_text
from commuter_api.services.alerts.scraper import TextAlertsClient, alerts_to_observations
from commuter_api.services.gtfs_rt.client import TripUpdatesClient
from commuter_api.services.gtfs_static.store import TimetableStore
from commuter_api.services.reconciliation.engine import (
    DelayContext,
    DelayReconciler,
    SyntheticDelaySource,
)
from commuter_api.services.schedule.instantiation import resolve_direction
from commuter_api.services.schedule.sources import (
    GtfsScheduleSource,
    ScheduleSource,
    SyntheticScheduleSource,
)
from commuter_api.services.social.scraper import SocialFeedClient
from commuter_api.stations import require_station

logger = get_logger(__name__)

SOURCE_PRIORITY = (
    DelaySourceTag.GTFS_RT,
    DelaySourceTag.TEXT_ALERT,
    DelaySourceTag.SYSTEM_WIDE_ALERT,
    DelaySourceTag.SOCIAL_FEED,
    DelaySourceTag.SYNTHETIC,
)
NO_DELAY_SOURCE = "none"


@dataclass(frozen=True)
class TrainQueryResult:
    trains: list[ReconciledTrain]
    is_mock_schedule: bool
    is_mock_delays: bool
    delay_source: str

    def to_dict(self) -> dict[str, object]:
        return {
            "trains": [train.to_dict() for train in self.trains],
            "isMockSchedule": self.is_mock_schedule,
            "isMockDelays": self.is_mock_delays,
            "delaySource": self.delay_source,
        }


def summarize_delay_sources(trains: list[ReconciledTrain]) -> str:
    """Winning sources across the result, in priority order, joined by ``+``."""
    used = {train.delay_source for train in trains if train.delay_source is not None}
    names = [source.value for source in SOURCE_PRIORITY if source in used]
    return "+".join(names) if names else NO_DELAY_SOURCE


class TrainQueryService:
    """Answers "what are the next trains from A to B" for one request at a time.

    The three delay feeds are fetched concurrently and fully joined before
    any train is reconciled. When the timetable yields nothing, the
    synthetic schedule is used and flagged.
    """

    def __init__(
        self,
        *,
        schedule: ScheduleSource | None = None,
        fallback_schedule: ScheduleSource | None = None,
        trip_updates: TripUpdatesClient | None = None,
        text_alerts: TextAlertsClient | None = None,
        social_feed: SocialFeedClient | None = None,
        synthetic_delays: SyntheticDelaySource | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.schedule = schedule or GtfsScheduleSource(TimetableStore())
        self.fallback_schedule = fallback_schedule or SyntheticScheduleSource()
        self.trip_updates = trip_updates or TripUpdatesClient()
        self.text_alerts = text_alerts or TextAlertsClient()
        self.social_feed = social_feed or SocialFeedClient()
        self.synthetic_delays = synthetic_delays or SyntheticDelaySource()
        self._clock = clock

    async def query(
        self,
        origin_id: str,
        destination_id: str,
        as_of: datetime | None = None,
        alert_text: str | None = None,
    ) -> TrainQueryResult:
        """Upcoming trains between two stations with reconciled delays.

        Args:
            origin_id: Boarding station id.
            destination_id: Alighting station id.
            as_of: Query instant. Defaults to now.
            alert_text: Raw alert text parsed in place of the live alert page.

        Returns:
            The trains plus flags saying whether schedule or delays are synthetic.

        Raises:
            UnknownStationError: If either station is not on the line.
            InvalidRouteError: If origin and destination are the same station.
        """
        require_station(origin_id)
        require_station(destination_id)
        resolve_direction(origin_id, destination_id)
        as_of = as_of or self._clock()

        context = await self.gather_delays(alert_text)
        reconciler = DelayReconciler(context, self.synthetic_delays)

        trains = await self.schedule.trains(origin_id, destination_id, as_of, reconciler)
        is_mock_schedule = self.schedule.is_synthetic
        if not trains:
            logger.info(
                "Falling back to synthetic schedule", origin=origin_id, destination=destination_id
            )
            trains = await self.fallback_schedule.trains(
                origin_id, destination_id, as_of, reconciler
            )
            is_mock_schedule = True

        result = TrainQueryResult(
            trains=trains,
            is_mock_schedule=is_mock_schedule,
            is_mock_delays=reconciler.synthetic,
            delay_source=summarize_delay_sources(trains),
        )
        logger.info(
            "Train query complete",
            origin=origin_id,
            destination=destination_id,
            trains=len(trains),
            mock_schedule=result.is_mock_schedule,
            mock_delays=result.is_mock_delays,
            delay_source=result.delay_source,
        )
        return result

    async def gather_delays(self, alert_text: str | None = None) -> DelayContext:
        """Fetch all delay sources concurrently and index the results."""
        text_delays = (
            _parse_alert_override(alert_text)
            if alert_text is not None
            else self.text_alerts.fetch_delays()
        )
        trip_updates, text_observations, social_observations = await asyncio.gather(
            self.trip_updates.fetch_trip_updates(),
            text_delays,
            self.social_feed.fetch_delays(),
        )
        return DelayContext.from_sources(trip_updates, text_observations, social_observations)


async def _parse_alert_override(alert_text: str) -> list[DelayObservation]:
    return alerts_to_observations(parse_alerts_from_text(alert_text))


_service_instance: TrainQueryService | None = None


def get_train_query_service() -> TrainQueryService:
    """Get or create the singleton query service."""
    global _service_instance
    if _service_instance is None:
        _service_instance = TrainQueryService()
    return _service_instance


def reset_train_query_service() -> None:
    """Reset the singleton (for testing)."""
    global _service_instance
    _service_instance = None
