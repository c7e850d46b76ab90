"""Schedule instantiation from the static timetable, with a synthetic fallback."""

from commuter_api.services.schedule.instantiation import (
    InvalidRouteError,
    ScheduleEngine,
    classify_service_tier,
    resolve_direction,
)
from commuter_api.services.schedule.sources import (
    GtfsScheduleSource,
    ScheduleSource,
    SyntheticScheduleSource,
)
from commuter_api.services.schedule.synthetic import (
    SyntheticScheduleGenerator,
    day_type,
    is_us_holiday,
)

__all__ = [
    "GtfsScheduleSource",
    "InvalidRouteError",
    "ScheduleEngine",
    "ScheduleSource",
    "SyntheticScheduleGenerator",
    "SyntheticScheduleSource",
    "classify_service_tier",
    "day_type",
    "is_us_holiday",
    "resolve_direction",
]
