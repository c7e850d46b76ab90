"""Tests for schedule instantiation against the fixture timetable."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, MagicMock
from zoneinfo import ZoneInfo

import pytest

from commuter_api.models.enums import DelaySourceTag, Direction, ServiceTier
from commuter_api.services.gtfs_rt.normalizer import StopTimeUpdate, TripUpdate
from commuter_api.services.gtfs_static.fetcher import GtfsStaticFetcher
from commuter_api.services.gtfs_static.normalizer import TimeParseError
from commuter_api.services.gtfs_static.store import TimetableStore
from commuter_api.services.reconciliation.engine import DelayContext, DelayReconciler
from commuter_api.services.schedule.instantiation import (
    InvalidRouteError,
    ScheduleEngine,
    classify_service_tier,
    instantiate_gtfs_time,
    resolve_direction,
)
from commuter_api.stations import UnknownStationError

from .fixtures.gtfs_fixture import STOP_TIMES_TXT, build_gtfs_zip

if TYPE_CHECKING:
    from pathlib import Path

LA = ZoneInfo("America/Los_Angeles")
WEDNESDAY_0730 = datetime(2025, 6, 4, 7, 30, tzinfo=LA)


async def _store(tmp_path: Path, zip_bytes: bytes) -> TimetableStore:
    fetcher = MagicMock(spec=GtfsStaticFetcher)
    fetcher.fetch_remote = AsyncMock(return_value=(zip_bytes, "hash"))
    store = TimetableStore(
        remote_url="https://data.caltrain.test/gtfs.zip",
        local_dir=tmp_path / "missing",
        fetcher=fetcher,
        tz=LA,
    )
    assert await store.ensure_loaded()
    return store


@pytest.fixture
async def engine(tmp_path: Path) -> ScheduleEngine:
    return ScheduleEngine(await _store(tmp_path, build_gtfs_zip()), max_trains=5, tz=LA)


def _live_reconciler(*updates: TripUpdate) -> DelayReconciler:
    # Any live data at all keeps synthetic delays out of the results
    filler = TripUpdate(trip_id="unrelated", stop_time_updates=(StopTimeUpdate("1", 1, 0),))
    return DelayReconciler(DelayContext.from_sources((*updates, filler)))


def _delayed(trip_id: str, minutes: int) -> TripUpdate:
    return TripUpdate(
        trip_id=trip_id,
        stop_time_updates=(StopTimeUpdate("70012", 1, departure_delay=minutes * 60),),
    )


class TestHelpers:
    @pytest.mark.parametrize(
        ("stops", "tier"),
        [
            (22, ServiceTier.LOCAL),
            (20, ServiceTier.LOCAL),
            (19, ServiceTier.LIMITED),
            (13, ServiceTier.LIMITED),
            (12, ServiceTier.EXPRESS),
            (7, ServiceTier.EXPRESS),
        ],
    )
    def test_classify_service_tier(self, stops: int, tier: ServiceTier) -> None:
        assert classify_service_tier(stops) is tier

    def test_resolve_direction(self) -> None:
        assert resolve_direction("sf", "diridon") is Direction.SOUTHBOUND
        assert resolve_direction("diridon", "sf") is Direction.NORTHBOUND

    def test_same_station_rejected(self) -> None:
        with pytest.raises(InvalidRouteError):
            resolve_direction("pa", "pa")

    def test_unknown_station_rejected(self) -> None:
        with pytest.raises(UnknownStationError):
            resolve_direction("pa", "oakland")

    def test_instantiate_overnight_time(self) -> None:
        instant = instantiate_gtfs_time(date(2025, 6, 4), "25:13:00", LA)
        assert instant.isoformat() == "2025-06-05T01:13:00-07:00"

    def test_instantiate_bad_time(self) -> None:
        with pytest.raises(TimeParseError):
            instantiate_gtfs_time(date(2025, 6, 4), "8 AM", LA)


class TestScheduledTrains:
    async def test_southbound_weekday_morning(self, engine: ScheduleEngine) -> None:
        trains = engine.scheduled_trains("sf", "diridon", WEDNESDAY_0730, _live_reconciler())

        assert [t.train_number for t in trains] == ["102", "402", "502", "104"]
        assert [t.tier for t in trains] == [
            ServiceTier.LOCAL,
            ServiceTier.LIMITED,
            ServiceTier.EXPRESS,
            ServiceTier.LOCAL,
        ]
        assert trains[0].departure_time == "2025-06-04T08:00:00-07:00"
        assert trains[0].arrival_time == "2025-06-04T09:03:00-07:00"
        assert trains[0].duration_minutes == 63
        assert trains[3].departure_time == "2025-06-05T00:10:00-07:00"
        assert all(t.direction is Direction.SOUTHBOUND for t in trains)

    async def test_intermediate_origin(self, engine: ScheduleEngine) -> None:
        trains = engine.scheduled_trains("pa", "diridon", WEDNESDAY_0730, _live_reconciler())

        assert trains[0].train_number == "102"
        assert trains[0].departure_time == "2025-06-04T08:42:00-07:00"
        assert trains[0].duration_minutes == 21

    async def test_northbound_skips_southbound_trips(self, engine: ScheduleEngine) -> None:
        as_of = datetime(2025, 6, 4, 6, 0, tzinfo=LA)
        trains = engine.scheduled_trains("diridon", "sf", as_of, _live_reconciler())

        assert [t.train_number for t in trains] == ["101"]
        assert trains[0].direction is Direction.NORTHBOUND
        assert trains[0].arrival_time == "2025-06-04T08:03:00-07:00"

    async def test_departed_trains_dropped(self, engine: ScheduleEngine) -> None:
        as_of = datetime(2025, 6, 4, 8, 5, tzinfo=LA)
        trains = engine.scheduled_trains("sf", "diridon", as_of, _live_reconciler())
        assert trains[0].train_number == "402"

    async def test_departure_exactly_now_is_departed(self, engine: ScheduleEngine) -> None:
        as_of = datetime(2025, 6, 4, 8, 0, tzinfo=LA)
        trains = engine.scheduled_trains("sf", "diridon", as_of, _live_reconciler())
        assert "102" not in [t.train_number for t in trains]

    async def test_delayed_train_still_upcoming(self, engine: ScheduleEngine) -> None:
        as_of = datetime(2025, 6, 4, 8, 5, tzinfo=LA)
        reconciler = _live_reconciler(_delayed("102", 10))
        trains = engine.scheduled_trains("sf", "diridon", as_of, reconciler)

        assert trains[0].train_number == "102"
        assert trains[0].delay_minutes == 10
        assert trains[0].delay_source is DelaySourceTag.GTFS_RT
        # Scheduled time is reported; the delay is separate
        assert trains[0].departure_time == "2025-06-04T08:00:00-07:00"

    async def test_max_trains(self, engine: ScheduleEngine) -> None:
        capped = ScheduleEngine(engine.store, max_trains=2, tz=LA)
        trains = capped.scheduled_trains("sf", "diridon", WEDNESDAY_0730, _live_reconciler())
        assert [t.train_number for t in trains] == ["102", "402"]

    async def test_utc_query_instant(self, engine: ScheduleEngine) -> None:
        as_of = datetime(2025, 6, 4, 14, 30, tzinfo=timezone.utc)
        trains = engine.scheduled_trains("sf", "diridon", as_of, _live_reconciler())
        assert trains[0].train_number == "102"

    async def test_weekend_service(self, engine: ScheduleEngine) -> None:
        saturday = datetime(2025, 6, 7, 9, 0, tzinfo=LA)
        trains = engine.scheduled_trains("sf", "pa", saturday, _live_reconciler())
        assert [t.train_number for t in trains] == ["202"]

    async def test_no_service_day(self, engine: ScheduleEngine) -> None:
        christmas = datetime(2025, 12, 25, 7, 0, tzinfo=LA)
        assert engine.scheduled_trains("sf", "diridon", christmas, _live_reconciler()) == []

    async def test_unmapped_station(
        self, engine: ScheduleEngine, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(
            "commuter_api.services.schedule.instantiation.gtfs_stop_id",
            lambda code, direction: None,
        )
        assert engine.scheduled_trains("sf", "diridon", WEDNESDAY_0730, _live_reconciler()) == []

    async def test_malformed_time_fails_closed(self, tmp_path: Path) -> None:
        broken = STOP_TIMES_TXT.replace("502,09:00:00,09:00:00", "502,9am,9am", 1)
        assert broken != STOP_TIMES_TXT
        store = await _store(tmp_path, build_gtfs_zip(stop_times=broken))
        engine = ScheduleEngine(store, max_trains=5, tz=LA)

        assert engine.scheduled_trains("sf", "diridon", WEDNESDAY_0730, _live_reconciler()) == []
