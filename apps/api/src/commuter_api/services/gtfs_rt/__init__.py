"""GTFS-Realtime trip update client for Caltrain delays."""

from commuter_api.services.gtfs_rt.client import TripUpdatesClient
from commuter_api.services.gtfs_rt.decoder import FeedDecodeError, decode_feed
from commuter_api.services.gtfs_rt.delays import compute_trip_delay, find_trip_delay
from commuter_api.services.gtfs_rt.fetcher import GtfsRtFetcher
from commuter_api.services.gtfs_rt.normalizer import GtfsRtNormalizer, StopTimeUpdate, TripUpdate

__all__ = [
    "FeedDecodeError",
    "GtfsRtFetcher",
    "GtfsRtNormalizer",
    "StopTimeUpdate",
    "TripUpdate",
    "TripUpdatesClient",
    "compute_trip_delay",
    "decode_feed",
    "find_trip_delay",
]
