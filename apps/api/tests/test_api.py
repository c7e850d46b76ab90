"""Tests for the public HTTP endpoints."""

import pytest
from httpx import AsyncClient

from commuter_api.services.alerts.scraper import StaticAlertTextFetcher, TextAlertsClient
from commuter_api.services.trains import TrainQueryService

TRAIN_KEYS = {
    "trainNumber",
    "tripId",
    "direction",
    "departureTime",
    "arrivalTime",
    "duration",
    "type",
    "delay",
    "status",
    "delaySource",
}


class TestTrainsEndpoint:
    @pytest.mark.asyncio
    async def test_scheduled_trains(self, client: AsyncClient) -> None:
        response = await client.get(
            "/trains",
            params={"origin": "sf", "destination": "diridon", "date": "2025-06-04T14:30:00Z"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["isMockSchedule"] is False
        assert data["isMockDelays"] is True
        assert data["delaySource"] == "synthetic"

        trains = data["trains"]
        assert [t["trainNumber"] for t in trains] == ["102", "402", "502", "104"]
        assert set(trains[0]) == TRAIN_KEYS
        assert trains[0]["direction"] == "Southbound"
        assert trains[0]["type"] == "Local"
        assert trains[0]["departureTime"] == "2025-06-04T08:00:00-07:00"
        assert trains[0]["duration"] == 63
        assert trains[0]["delaySource"] == "synthetic"

    @pytest.mark.asyncio
    async def test_defaults_to_now(self, client: AsyncClient) -> None:
        response = await client.get("/trains", params={"origin": "sf", "destination": "diridon"})

        assert response.status_code == 200
        assert response.json()["trains"][0]["trainNumber"] == "102"

    @pytest.mark.asyncio
    async def test_no_service_date_uses_synthetic_schedule(self, client: AsyncClient) -> None:
        response = await client.get(
            "/trains", params={"origin": "sf", "destination": "diridon", "date": "2025-12-25"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["isMockSchedule"] is True
        assert 3 <= len(data["trains"]) <= 5
        assert all(t["tripId"] is None for t in data["trains"])

    @pytest.mark.asyncio
    async def test_alert_text_override(self, client: AsyncClient) -> None:
        response = await client.get(
            "/trains",
            params={
                "origin": "sf",
                "destination": "diridon",
                "date": "2025-06-04T14:30:00Z",
                "alerts": "Train 402 is delayed by 12 minutes.",
            },
        )

        data = response.json()
        assert data["isMockDelays"] is False
        by_number = {t["trainNumber"]: t for t in data["trains"]}
        assert by_number["402"]["delay"] == 12
        assert by_number["402"]["status"] == "delayed"
        assert by_number["402"]["delaySource"] == "text-alert"
        assert by_number["102"]["delaySource"] is None
        assert data["delaySource"] == "text-alert"

    @pytest.mark.asyncio
    async def test_empty_alert_text_uses_live_page(
        self, client: AsyncClient, train_service: TrainQueryService
    ) -> None:
        train_service.text_alerts = TextAlertsClient(
            fetcher=StaticAlertTextFetcher("Train 402 is delayed by 12 minutes.")
        )

        response = await client.get(
            "/trains",
            params={
                "origin": "sf",
                "destination": "diridon",
                "date": "2025-06-04T14:30:00Z",
                "alerts": "",
            },
        )

        data = response.json()
        assert data["isMockDelays"] is False
        by_number = {t["trainNumber"]: t for t in data["trains"]}
        assert by_number["402"]["delay"] == 12
        assert by_number["402"]["delaySource"] == "text-alert"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "params",
        [
            {},
            {"origin": "sf"},
            {"destination": "diridon"},
            {"origin": "", "destination": "diridon"},
        ],
    )
    async def test_missing_stations(self, client: AsyncClient, params: dict[str, str]) -> None:
        response = await client.get("/trains", params=params)

        assert response.status_code == 400
        assert response.json()["detail"] == "Origin and destination are required"

    @pytest.mark.asyncio
    async def test_unknown_station(self, client: AsyncClient) -> None:
        response = await client.get("/trains", params={"origin": "sf", "destination": "oakland"})

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid station ID"

    @pytest.mark.asyncio
    async def test_same_station(self, client: AsyncClient) -> None:
        response = await client.get("/trains", params={"origin": "pa", "destination": "pa"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_invalid_date(self, client: AsyncClient) -> None:
        response = await client.get(
            "/trains", params={"origin": "sf", "destination": "diridon", "date": "tomorrow"}
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid date: tomorrow"


class TestStationsEndpoint:
    @pytest.mark.asyncio
    async def test_lists_stations_north_to_south(self, client: AsyncClient) -> None:
        response = await client.get("/stations")

        assert response.status_code == 200
        stations = response.json()["stations"]
        assert stations[0]["id"] == "sf"
        assert stations[-1]["id"] == "gilroy"
        assert stations[0]["coordinates"] == {"lat": 37.7765, "lng": -122.3943}
        assert {"id", "name", "code", "coordinates"} == set(stations[0])


class TestAlertsEndpoint:
    @pytest.mark.asyncio
    async def test_demo_alerts_without_credentials(self, client: AsyncClient) -> None:
        response = await client.get("/alerts")

        assert response.status_code == 200
        data = response.json()
        assert data["isMockData"] is True
        assert [a["id"] for a in data["alerts"]] == ["mock-1", "mock-2"]
        assert set(data["alerts"][0]) == {"id", "severity", "title", "description", "timestamp"}


class TestWeatherEndpoint:
    @pytest.mark.asyncio
    async def test_synthetic_weather_without_credentials(self, client: AsyncClient) -> None:
        response = await client.get("/weather", params={"station": "pa"})

        assert response.status_code == 200
        data = response.json()
        assert data["isMockData"] is True
        assert set(data) == {
            "temperature",
            "description",
            "icon",
            "windSpeed",
            "humidity",
            "isMockData",
        }

    @pytest.mark.asyncio
    async def test_station_required(self, client: AsyncClient) -> None:
        response = await client.get("/weather")

        assert response.status_code == 400
        assert response.json()["detail"] == "Station ID is required"

    @pytest.mark.asyncio
    async def test_unknown_station(self, client: AsyncClient) -> None:
        response = await client.get("/weather", params={"station": "oakland"})

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid station ID"
