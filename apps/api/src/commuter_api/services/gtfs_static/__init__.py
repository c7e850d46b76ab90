"""Static GTFS timetable pipeline for Caltrain."""

from commuter_api.services.gtfs_static.fetcher import GtfsStaticFetcher
from commuter_api.services.gtfs_static.normalizer import GtfsNormalizer
from commuter_api.services.gtfs_static.parser import GtfsParser
from commuter_api.services.gtfs_static.reader import GtfsDirectoryReader, GtfsZipReader
from commuter_api.services.gtfs_static.store import TimetableStore

__all__ = [
    "GtfsDirectoryReader",
    "GtfsNormalizer",
    "GtfsParser",
    "GtfsStaticFetcher",
    "GtfsZipReader",
    "TimetableStore",
]
