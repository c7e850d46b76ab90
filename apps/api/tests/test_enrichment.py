"""Tests for service alert and weather enrichment clients."""

from __future__ import annotations

import json
import random
from datetime import datetime, timezone
from typing import Any
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from commuter_api.services.enrichment.service_alerts import (
    ServiceAlertsClient,
    map_severity,
    parse_situations,
)
from commuter_api.services.enrichment.weather import (
    WeatherClient,
    WeatherError,
    celsius_to_fahrenheit,
    mps_to_mph,
    parse_weather,
    synthetic_weather,
)
from commuter_api.stations import require_station

ALERTS_URL = "https://api.transit.test/servicealerts?agency=CT&format=json"
WEATHER_URL = "https://weather.test/data/2.5/weather"
NOW = datetime(2025, 6, 4, 15, 0, tzinfo=timezone.utc)

SIRI_PAYLOAD = {
    "ServiceDelivery": {
        "SituationExchangeDelivery": {
            "Situations": {
                "PtSituationElement": [
                    {
                        "SituationNumber": "sx-1",
                        "Severity": "severe",
                        "Summary": [{"_": "Single tracking near Menlo Park"}],
                        "Description": [{"_": "Expect delays of up to 20 minutes."}],
                        "InfoLinks": {"InfoLink": [{"Uri": "https://www.caltrain.com/alerts"}]},
                    },
                    {
                        "SituationNumber": "sx-2",
                        "Summary": "Elevator outage at Millbrae",
                    },
                ]
            }
        }
    }
}

WEATHER_PAYLOAD = {
    "weather": [{"description": "clear sky", "icon": "01d"}],
    "main": {"temp": 20.0, "humidity": 65},
    "wind": {"speed": 4.47},
}


def _response(url: str, status: int = 200, **kwargs: Any) -> httpx.Response:
    return httpx.Response(status, request=httpx.Request("GET", url), **kwargs)


def _alerts_client(api_key: str = "key") -> ServiceAlertsClient:
    return ServiceAlertsClient(url=ALERTS_URL, api_key=api_key, clock=lambda: NOW)


class TestMapSeverity:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (None, "info"),
            ("", "info"),
            ("slight", "info"),
            ("normal", "info"),
            ("Moderate", "warning"),
            ("warning", "warning"),
            ("severe", "critical"),
            ("verySevere", "critical"),
            ("critical", "critical"),
        ],
    )
    def test_mapping(self, raw: str | None, expected: str) -> None:
        assert map_severity(raw) == expected


class TestParseSituations:
    def test_full_and_minimal_situations(self) -> None:
        alerts = parse_situations(SIRI_PAYLOAD, NOW)

        assert [a.id for a in alerts] == ["sx-1", "sx-2"]
        assert alerts[0].severity == "critical"
        assert alerts[0].title == "Single tracking near Menlo Park"
        assert alerts[0].description == "Expect delays of up to 20 minutes."
        assert alerts[0].url == "https://www.caltrain.com/alerts"
        assert alerts[0].timestamp == NOW.isoformat()
        assert alerts[1].severity == "info"
        assert alerts[1].title == "Elevator outage at Millbrae"
        assert alerts[1].description == ""
        assert alerts[1].url is None

    def test_single_situation_object(self) -> None:
        payload = {
            "ServiceDelivery": {
                "SituationExchangeDelivery": {
                    "Situations": {"PtSituationElement": {"SituationNumber": "only"}}
                }
            }
        }
        alerts = parse_situations(payload, NOW)
        assert [a.id for a in alerts] == ["only"]
        assert alerts[0].title == "Service Alert"

    def test_empty_delivery(self) -> None:
        assert parse_situations({}, NOW) == []
        assert parse_situations({"ServiceDelivery": {}}, NOW) == []


class TestServiceAlertsClient:
    async def test_demo_alerts_without_api_key(self) -> None:
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as get:
            result = await _alerts_client(api_key="").fetch_alerts()

        get.assert_not_called()
        assert result.is_mock_data
        assert [a.id for a in result.alerts] == ["mock-1", "mock-2"]
        assert [a.severity for a in result.alerts] == ["info", "warning"]

    async def test_fetches_and_parses(self) -> None:
        body = b"\xef\xbb\xbf" + json.dumps(SIRI_PAYLOAD).encode()
        with patch(
            "httpx.AsyncClient.get",
            new_callable=AsyncMock,
            return_value=_response(ALERTS_URL, content=body),
        ):
            result = await _alerts_client().fetch_alerts()

        assert not result.is_mock_data
        assert [a.id for a in result.alerts] == ["sx-1", "sx-2"]

    async def test_results_cached(self) -> None:
        client = _alerts_client()
        with patch(
            "httpx.AsyncClient.get",
            new_callable=AsyncMock,
            return_value=_response(ALERTS_URL, content=json.dumps(SIRI_PAYLOAD).encode()),
        ) as get:
            await client.fetch_alerts()
            await client.fetch_alerts()

        get.assert_awaited_once()

    async def test_http_error_yields_no_alerts(self) -> None:
        with patch(
            "httpx.AsyncClient.get",
            new_callable=AsyncMock,
            return_value=_response(ALERTS_URL, status=503),
        ):
            result = await _alerts_client().fetch_alerts()

        assert result.alerts == []
        assert not result.is_mock_data

    async def test_invalid_json_yields_no_alerts(self) -> None:
        with patch(
            "httpx.AsyncClient.get",
            new_callable=AsyncMock,
            return_value=_response(ALERTS_URL, content=b"<html>maintenance</html>"),
        ):
            result = await _alerts_client().fetch_alerts()

        assert result.alerts == []
        assert not result.is_mock_data

    async def test_network_error_yields_no_alerts(self) -> None:
        with patch(
            "httpx.AsyncClient.get",
            new_callable=AsyncMock,
            side_effect=httpx.ConnectError("refused"),
        ):
            result = await _alerts_client().fetch_alerts()

        assert result.alerts == []


class TestWeatherConversions:
    @pytest.mark.parametrize(
        ("celsius", "fahrenheit"),
        [(0, 32), (20, 68), (-40, -40), (15.5, 60)],
    )
    def test_celsius_to_fahrenheit(self, celsius: float, fahrenheit: int) -> None:
        assert celsius_to_fahrenheit(celsius) == fahrenheit

    def test_mps_to_mph(self) -> None:
        assert mps_to_mph(0) == 0
        assert mps_to_mph(4.47) == 10

    def test_parse_weather(self) -> None:
        weather = parse_weather(WEATHER_PAYLOAD)
        assert weather.temperature == 68
        assert weather.description == "clear sky"
        assert weather.icon == "01d"
        assert weather.wind_speed == 10
        assert weather.humidity == 65
        assert not weather.is_mock_data

    @pytest.mark.parametrize(
        "payload",
        [{}, {"weather": [], "main": {"temp": 1, "humidity": 1}, "wind": {"speed": 1}}],
    )
    def test_parse_weather_malformed(self, payload: dict[str, object]) -> None:
        with pytest.raises(WeatherError, match="Malformed weather response"):
            parse_weather(payload)

    def test_synthetic_weather_ranges(self) -> None:
        rng = random.Random(11)
        for _ in range(50):
            weather = synthetic_weather(37.77, rng)
            assert weather.is_mock_data
            assert 65 <= weather.temperature <= 70
            assert 5 <= weather.wind_speed <= 15
            assert 50 <= weather.humidity <= 80

    def test_synthetic_weather_warmer_south(self) -> None:
        weather = synthetic_weather(require_station("gilroy").lat, random.Random(1))
        assert weather.temperature >= 80

    def test_to_dict_is_camel_case(self) -> None:
        data = parse_weather(WEATHER_PAYLOAD).to_dict()
        assert set(data) == {
            "temperature",
            "description",
            "icon",
            "windSpeed",
            "humidity",
            "isMockData",
        }


class TestWeatherClient:
    def _client(self, api_key: str = "key") -> WeatherClient:
        return WeatherClient(url=WEATHER_URL, api_key=api_key, ttl_sec=600, rng=random.Random(2))

    async def test_synthetic_without_api_key(self) -> None:
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as get:
            weather = await self._client(api_key="").weather_for(require_station("sf"))

        get.assert_not_called()
        assert weather.is_mock_data

    async def test_fetches_with_station_coordinates(self) -> None:
        station = require_station("pa")
        with patch(
            "httpx.AsyncClient.get",
            new_callable=AsyncMock,
            return_value=_response(WEATHER_URL, json=WEATHER_PAYLOAD),
        ) as get:
            weather = await self._client().weather_for(station)

        assert weather.temperature == 68
        assert not weather.is_mock_data
        params = get.call_args.kwargs["params"]
        assert (params["lat"], params["lon"]) == (station.lat, station.lon)
        assert params["units"] == "metric"

    async def test_cached_per_station(self) -> None:
        client = self._client()
        with patch(
            "httpx.AsyncClient.get",
            new_callable=AsyncMock,
            return_value=_response(WEATHER_URL, json=WEATHER_PAYLOAD),
        ) as get:
            await client.weather_for(require_station("pa"))
            await client.weather_for(require_station("pa"))
            await client.weather_for(require_station("mv"))

        assert get.await_count == 2

    async def test_provider_failure_falls_back_to_synthetic(self) -> None:
        with patch(
            "httpx.AsyncClient.get",
            new_callable=AsyncMock,
            return_value=_response(WEATHER_URL, status=401),
        ):
            weather = await self._client().weather_for(require_station("sf"))

        assert weather.is_mock_data
