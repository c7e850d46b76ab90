"""Cached, non-throwing GTFS-RT trip update client."""

from __future__ import annotations

from commuter_api.cache import TtlCache, utc_now
from commuter_api.config import get_settings
from commuter_api.logging import get_logger
from commuter_api.models.delays import DelayObservation
from commuter_api.models.enums import DelaySourceTag
from commuter_api.services.gtfs_rt.decoder import FeedDecodeError, decode_feed, feed_age_seconds
from commuter_api.services.gtfs_rt.delays import compute_trip_delay
from commuter_api.services.gtfs_rt.fetcher import FeedFetchError, GtfsRtFetcher
from commuter_api.services.gtfs_rt.normalizer import GtfsRtNormalizer, TripUpdate

logger = get_logger(__name__)

FEED_TRIP_UPDATES = "trip_updates"


class TripUpdatesClient:
    """Fetches the trip update snapshot, caching it for a short TTL.

    Without an API key the client returns no data rather than failing.
    """

    def __init__(
        self,
        *,
        url: str | None = None,
        api_key: str | None = None,
        fetcher: GtfsRtFetcher | None = None,
        cache: TtlCache[list[TripUpdate]] | None = None,
    ) -> None:
        settings = get_settings()
        self._url = url if url is not None else settings.gtfs_trip_updates_full_url
        self._api_key = api_key if api_key is not None else settings.transit_api_key
        self._fetcher = fetcher or GtfsRtFetcher(
            timeout_sec=settings.gtfs_rt_fetch_timeout_sec,
            max_retries=settings.gtfs_rt_max_retries,
            backoff_base=settings.gtfs_rt_backoff_base,
        )
        self._normalizer = GtfsRtNormalizer()
        self._cache: TtlCache[list[TripUpdate]] = cache or TtlCache(settings.trip_updates_ttl_sec)

    async def fetch_trip_updates(self) -> list[TripUpdate]:
        """Return the current trip updates, or an empty list on any failure."""
        if not self._api_key:
            logger.warning("TRANSIT_API_KEY not configured, skipping trip updates")
            return []

        cached = self._cache.get()
        if cached is not None:
            return cached

        try:
            data = await self._fetcher.fetch(self._url, FEED_TRIP_UPDATES)
            feed = decode_feed(data, FEED_TRIP_UPDATES)
            updates = self._normalizer.normalize_trip_updates(feed)
        except (FeedFetchError, FeedDecodeError) as exc:
            logger.error("Trip updates unavailable", error=str(exc))
            return []

        self._cache.set(updates)
        logger.info(
            "Trip updates refreshed",
            trip_count=len(updates),
            feed_age_sec=feed_age_seconds(feed, utc_now()),
        )
        return updates

    async def fetch_delays(self) -> list[DelayObservation]:
        """Trip-level delay observations from the current snapshot."""
        updates = await self.fetch_trip_updates()
        return trip_updates_to_observations(updates)


def trip_updates_to_observations(updates: list[TripUpdate]) -> list[DelayObservation]:
    observations: list[DelayObservation] = []
    for update in updates:
        trip_delay = compute_trip_delay(update)
        if trip_delay is None:
            continue
        observations.append(
            DelayObservation(
                source=DelaySourceTag.GTFS_RT,
                delay_minutes=trip_delay.delay_minutes,
                status=trip_delay.status,
                trip_id=update.trip_id,
            )
        )
    return observations
