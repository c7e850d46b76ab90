"""Pytest configuration and fixtures."""

import random
from collections.abc import AsyncGenerator
from datetime import datetime
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock
from zoneinfo import ZoneInfo

import pytest
from httpx import ASGITransport, AsyncClient

from commuter_api.main import app
from commuter_api.services.alerts.scraper import StaticAlertTextFetcher, TextAlertsClient
from commuter_api.services.enrichment.service_alerts import (
    ServiceAlertsClient,
    get_service_alerts_client,
)
from commuter_api.services.enrichment.weather import WeatherClient, get_weather_client
from commuter_api.services.gtfs_rt.client import TripUpdatesClient
from commuter_api.services.gtfs_static.fetcher import GtfsStaticFetcher
from commuter_api.services.gtfs_static.store import TimetableStore
from commuter_api.services.reconciliation.engine import SyntheticDelaySource
from commuter_api.services.schedule.instantiation import ScheduleEngine
from commuter_api.services.schedule.sources import GtfsScheduleSource, SyntheticScheduleSource
from commuter_api.services.schedule.synthetic import SyntheticScheduleGenerator
from commuter_api.services.social.scraper import SocialFeedClient, StaticTimelineFetcher
from commuter_api.services.trains import TrainQueryService, get_train_query_service

from .fixtures.gtfs_fixture import build_gtfs_zip

OPERATOR_TZ = ZoneInfo("America/Los_Angeles")
QUERY_NOW = datetime(2025, 6, 4, 7, 30, tzinfo=OPERATOR_TZ)


@pytest.fixture
def train_service(tmp_path: Path) -> TrainQueryService:
    """Query service over the fixture timetable with offline delay feeds."""
    fetcher = MagicMock(spec=GtfsStaticFetcher)
    fetcher.fetch_remote = AsyncMock(return_value=(build_gtfs_zip(), "hash"))
    store = TimetableStore(
        remote_url="https://data.caltrain.test/gtfs.zip",
        local_dir=tmp_path / "missing",
        fetcher=fetcher,
        tz=OPERATOR_TZ,
    )

    trip_updates = MagicMock(spec=TripUpdatesClient)
    trip_updates.fetch_trip_updates = AsyncMock(return_value=[])

    return TrainQueryService(
        schedule=GtfsScheduleSource(store, ScheduleEngine(store, max_trains=5, tz=OPERATOR_TZ)),
        fallback_schedule=SyntheticScheduleSource(
            SyntheticScheduleGenerator(random.Random(0), tz=OPERATOR_TZ)
        ),
        trip_updates=trip_updates,
        text_alerts=TextAlertsClient(fetcher=StaticAlertTextFetcher("")),
        social_feed=SocialFeedClient(fetcher=StaticTimelineFetcher([]), enabled=False),
        synthetic_delays=SyntheticDelaySource(random.Random(0)),
        clock=lambda: QUERY_NOW,
    )


@pytest.fixture
def alerts_client() -> ServiceAlertsClient:
    """Service alerts client without credentials (demo alerts)."""
    return ServiceAlertsClient(url="https://api.transit.test/servicealerts", api_key="")


@pytest.fixture
def weather_client() -> WeatherClient:
    """Weather client without credentials (synthetic weather)."""
    return WeatherClient(api_key="", rng=random.Random(0))


@pytest.fixture
async def client(
    train_service: TrainQueryService,
    alerts_client: ServiceAlertsClient,
    weather_client: WeatherClient,
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing."""
    app.dependency_overrides[get_train_query_service] = lambda: train_service
    app.dependency_overrides[get_service_alerts_client] = lambda: alerts_client
    app.dependency_overrides[get_weather_client] = lambda: weather_client

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
