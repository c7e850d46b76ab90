"""Synthetic schedule used when no timetable can be instantiated.

Trains are spaced by an interval that depends on the kind of day, with the
tier mix shifting the same way. Everything produced here is placeholder
data and is flagged as such by the caller.
"""

from __future__ import annotations

import random
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING, Literal

from commuter_api.models.enums import Direction, ServiceTier
from commuter_api.models.timetable import TrainCandidate
from commuter_api.services.schedule.instantiation import resolve_direction
from commuter_api.stations import station_index
from commuter_api.timeutil import to_local

if TYPE_CHECKING:
    from zoneinfo import ZoneInfo

DayType = Literal["holiday", "weekend", "weekday-peak", "weekday-offpeak"]

MIN_TRAINS = 3
MAX_TRAINS = 5
INTERVAL_JITTER_MINUTES = 5

INTERVAL_MINUTES: dict[DayType, int] = {
    "holiday": 60,
    "weekend": 45,
    "weekday-peak": 20,
    "weekday-offpeak": 30,
}

# (Local, Limited, Express) weights
TIER_WEIGHTS: dict[DayType, tuple[float, float, float]] = {
    "holiday": (0.9, 0.1, 0.0),
    "weekend": (0.8, 0.2, 0.0),
    "weekday-peak": (0.3, 0.4, 0.3),
    "weekday-offpeak": (0.6, 0.3, 0.1),
}

# Minutes per station passed, by tier
MINUTES_PER_STATION: dict[ServiceTier, float] = {
    ServiceTier.LOCAL: 3.0,
    ServiceTier.LIMITED: 2.4,
    ServiceTier.EXPRESS: 1.8,
}

TRAIN_NUMBER_BASE: dict[ServiceTier, int] = {
    ServiceTier.LOCAL: 100,
    ServiceTier.LIMITED: 400,
    ServiceTier.EXPRESS: 500,
}

# Half-open local hour ranges
PEAK_HOURS = ((6, 9), (16, 19))

_TIERS = (ServiceTier.LOCAL, ServiceTier.LIMITED, ServiceTier.EXPRESS)


def _nth_weekday(year: int, month: int, weekday: int, n: int) -> date:
    first = date(year, month, 1)
    offset = (weekday - first.weekday()) % 7
    return first + timedelta(days=offset + 7 * (n - 1))


def _last_weekday(year: int, month: int, weekday: int) -> date:
    next_month = date(year + month // 12, month % 12 + 1, 1)
    last = next_month - timedelta(days=1)
    return last - timedelta(days=(last.weekday() - weekday) % 7)


def is_us_holiday(day: date) -> bool:
    """Fixed-rule US holidays that change Caltrain service.

    New Year's Day, Memorial Day (last Monday of May), Independence Day,
    Labor Day (first Monday of September), Thanksgiving (fourth Thursday
    of November) and Christmas Day. Observed-day shifts are not applied.
    """
    if (day.month, day.day) in ((1, 1), (7, 4), (12, 25)):
        return True
    if day.month == 5:
        return day == _last_weekday(day.year, 5, 0)
    if day.month == 9:
        return day == _nth_weekday(day.year, 9, 0, 1)
    if day.month == 11:
        return day == _nth_weekday(day.year, 11, 3, 4)
    return False


def day_type(instant: datetime, tz: ZoneInfo | None = None) -> DayType:
    local = to_local(instant, tz)
    if is_us_holiday(local.date()):
        return "holiday"
    if local.weekday() >= 5:
        return "weekend"
    if any(start <= local.hour < end for start, end in PEAK_HOURS):
        return "weekday-peak"
    return "weekday-offpeak"


class SyntheticScheduleGenerator:
    """Generates 3-5 plausible upcoming trains for a station pair."""

    def __init__(self, rng: random.Random | None = None, tz: ZoneInfo | None = None) -> None:
        self._rng = rng or random.Random()
        self._tz = tz

    def generate(
        self, origin_id: str, destination_id: str, as_of: datetime
    ) -> list[TrainCandidate]:
        """Build synthetic trains departing after ``as_of``.

        Raises:
            UnknownStationError: If either station is not on the line.
            InvalidRouteError: If origin and destination are the same station.
        """
        direction = resolve_direction(origin_id, destination_id)
        stations_passed = abs(station_index(origin_id) - station_index(destination_id))
        now = to_local(as_of, self._tz).replace(second=0, microsecond=0)
        kind = day_type(now, self._tz)

        count = self._rng.randint(MIN_TRAINS, MAX_TRAINS)
        departure = now + timedelta(minutes=self._rng.randint(5, INTERVAL_MINUTES[kind] // 2))
        used_numbers: set[str] = set()
        trains: list[TrainCandidate] = []

        for _ in range(count):
            tier = self._rng.choices(_TIERS, weights=TIER_WEIGHTS[kind])[0]
            duration = max(5, round(stations_passed * MINUTES_PER_STATION[tier]))
            train_number = self._train_number(tier, direction, used_numbers)

            trains.append(
                TrainCandidate(
                    train_number=train_number,
                    trip_id=None,
                    direction=direction,
                    departure=departure,
                    arrival=departure + timedelta(minutes=duration),
                    tier=tier,
                )
            )

            jitter = self._rng.randint(-INTERVAL_JITTER_MINUTES, INTERVAL_JITTER_MINUTES)
            departure = departure + timedelta(minutes=INTERVAL_MINUTES[kind] + jitter)

        return trains

    def _train_number(self, tier: ServiceTier, direction: Direction, used: set[str]) -> str:
        # Northbound trains are odd, southbound even
        parity = 1 if direction is Direction.NORTHBOUND else 0
        base = TRAIN_NUMBER_BASE[tier]
        while True:
            number = str(base + 2 * self._rng.randint(0, 49) + parity)
            if number not in used:
                used.add(number)
                return number
