"""Operator-local civil time helpers.

Caltrain runs on America/Los_Angeles. Offsets are always taken from the
zone database for the instant in question, so PST/PDT is chosen per date
rather than per query.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo

from commuter_api.config import get_settings


@lru_cache(maxsize=8)
def get_zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def operator_zone() -> ZoneInfo:
    return get_zone(get_settings().operator_timezone)


def to_local(instant: datetime, tz: ZoneInfo | None = None) -> datetime:
    """Convert an instant to operator-local time.

    Naive datetimes are taken to already be operator-local.
    """
    tz = tz or operator_zone()
    if instant.tzinfo is None:
        return instant.replace(tzinfo=tz)
    return instant.astimezone(tz)


def local_service_date(instant: datetime, tz: ZoneInfo | None = None) -> date:
    """The operator-local calendar date of an instant."""
    return to_local(instant, tz).date()


def local_civil_instant(
    service_date: date,
    hour: int,
    minute: int,
    second: int = 0,
    tz: ZoneInfo | None = None,
) -> datetime:
    """Build the absolute instant for a GTFS-style time on a service date.

    ``hour`` may be 24 or more; ``hour // 24`` days are added to the service
    date first, then the remaining wall-clock time is localized with the
    offset in force on that computed date.

    Examples:
        (2025-03-08, 25, 30) -> 2025-03-09 01:30 PST (-08:00)
        (2025-03-09, 10, 0)  -> 2025-03-09 10:00 PDT (-07:00)
    """
    tz = tz or operator_zone()
    day_offset, wall_hour = divmod(hour, 24)
    civil_date = service_date + timedelta(days=day_offset)
    wall = datetime.combine(civil_date, time(wall_hour, minute, second))
    # Round-trip through UTC so wall times skipped by spring-forward resolve
    # to a real instant.
    return wall.replace(tzinfo=tz).astimezone(timezone.utc).astimezone(tz)
