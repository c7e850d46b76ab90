"""Per-trip delay derivation from GTFS-RT trip updates."""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass

from commuter_api.models.enums import TrainStatus
from commuter_api.services.gtfs_rt.normalizer import TripUpdate

# |delay| of at least this many minutes is reported as delayed
DELAYED_THRESHOLD_MINUTES = 1


@dataclass(frozen=True)
class TripDelay:
    trip_id: str
    delay_minutes: int
    status: TrainStatus


def seconds_to_minutes(seconds: int) -> int:
    """Round seconds to whole minutes, halves away from negative infinity."""
    return math.floor(seconds / 60 + 0.5)


def _status_for(delay_minutes: int, cancelled: bool) -> TrainStatus:
    if cancelled:
        return TrainStatus.CANCELLED
    if abs(delay_minutes) >= DELAYED_THRESHOLD_MINUTES:
        return TrainStatus.DELAYED
    return TrainStatus.ON_TIME


def compute_trip_delay(update: TripUpdate) -> TripDelay | None:
    """Reduce a trip update to one delay and status.

    The delay is the largest absolute delay seen at any stop, so delay that
    accumulates along the journey is captured. Ties between equal early and
    late values resolve to late, keeping the result independent of update
    order. A skipped/cancelled stop, or a cancelled trip, reports cancelled
    whatever the numeric delays say.

    Returns None when the update carries no stop updates and is not a
    cancellation.
    """
    cancelled = update.is_cancelled or any(stu.is_cancelled for stu in update.stop_time_updates)
    if not update.stop_time_updates and not cancelled:
        return None

    delays = [stu.delay_sec for stu in update.stop_time_updates if not stu.is_cancelled]
    max_delay_sec = max(delays, key=lambda d: (abs(d), d)) if delays else 0
    delay_minutes = seconds_to_minutes(max_delay_sec)

    return TripDelay(
        trip_id=update.trip_id,
        delay_minutes=0 if cancelled else delay_minutes,
        status=_status_for(delay_minutes, cancelled),
    )


def find_trip_update(
    updates: Iterable[TripUpdate],
    trip_id: str | None,
    train_number: str | None = None,
) -> TripUpdate | None:
    """Locate the update for a trip.

    Exact trip id first; then the feed's trip id equal to, or ending with
    ``-{train_number}``, since the feed may key trips by the train number.
    """
    updates = list(updates)
    if trip_id:
        for update in updates:
            if update.trip_id == trip_id:
                return update

    if train_number:
        suffix = f"-{train_number}"
        for update in updates:
            if update.trip_id == train_number or update.trip_id.endswith(suffix):
                return update

    return None


def find_trip_delay(
    updates: Iterable[TripUpdate],
    trip_id: str | None,
    train_number: str | None = None,
) -> TripDelay | None:
    update = find_trip_update(updates, trip_id, train_number)
    return compute_trip_delay(update) if update else None


def get_stop_delay(
    updates: Iterable[TripUpdate],
    stop_id: str,
    trip_id: str | None = None,
) -> TripDelay | None:
    """Delay at a specific stop, optionally restricted to one trip."""
    for update in updates:
        if trip_id and update.trip_id != trip_id:
            continue
        for stu in update.stop_time_updates:
            if stu.stop_id != stop_id:
                continue
            delay_minutes = seconds_to_minutes(stu.delay_sec)
            return TripDelay(
                trip_id=update.trip_id,
                delay_minutes=delay_minutes,
                status=_status_for(delay_minutes, stu.is_cancelled),
            )
    return None
