"""Protobuf decoding of GTFS-RT snapshots."""

from __future__ import annotations

from datetime import datetime, timezone

from google.protobuf.message import DecodeError
from google.transit import gtfs_realtime_pb2

from commuter_api.logging import get_logger

logger = get_logger(__name__)


class FeedDecodeError(Exception):
    """Raised when a snapshot is not a valid FeedMessage."""


def feed_timestamp(feed: gtfs_realtime_pb2.FeedMessage) -> int:
    """Header timestamp in epoch seconds, 0 when the producer left it unset."""
    return feed.header.timestamp or 0


def feed_age_seconds(feed: gtfs_realtime_pb2.FeedMessage, now: datetime) -> int | None:
    """How old the snapshot was at ``now``; None without a header timestamp."""
    stamp = feed_timestamp(feed)
    if not stamp:
        return None
    produced = datetime.fromtimestamp(stamp, tz=timezone.utc)
    return int((now - produced).total_seconds())


def decode_feed(data: bytes, feed_type: str = "trip_updates") -> gtfs_realtime_pb2.FeedMessage:
    """Parse snapshot bytes. Empty input decodes to an empty feed.

    Raises:
        FeedDecodeError: If the bytes are not a FeedMessage.
    """
    feed = gtfs_realtime_pb2.FeedMessage()
    try:
        feed.ParseFromString(data)
    except DecodeError as exc:
        msg = f"Failed to decode {feed_type} protobuf"
        raise FeedDecodeError(msg) from exc

    logger.debug(
        "Realtime snapshot decoded",
        feed_type=feed_type,
        entities=len(feed.entity),
        trip_updates=sum(1 for entity in feed.entity if entity.HasField("trip_update")),
        feed_timestamp=feed_timestamp(feed),
    )
    return feed
