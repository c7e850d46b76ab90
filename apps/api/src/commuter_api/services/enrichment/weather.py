"""Current weather at a station from OpenWeatherMap."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any

import httpx

from commuter_api.cache import TtlCache
from commuter_api.config import get_settings
from commuter_api.logging import get_logger
from commuter_api.stations import Station

logger = get_logger(__name__)

# Latitude of San Francisco; synthetic readings warm southward from here
REFERENCE_LATITUDE = 37.77

MOCK_CONDITIONS = (
    ("clear sky", "01d"),
    ("few clouds", "02d"),
    ("partly cloudy", "03d"),
    ("overcast clouds", "04d"),
)


class WeatherError(Exception):
    """Raised when the weather provider returns an unusable response."""


@dataclass(frozen=True)
class WeatherData:
    temperature: int  # Fahrenheit
    description: str
    icon: str
    wind_speed: int  # mph
    humidity: int  # percent
    is_mock_data: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "temperature": self.temperature,
            "description": self.description,
            "icon": self.icon,
            "windSpeed": self.wind_speed,
            "humidity": self.humidity,
            "isMockData": self.is_mock_data,
        }


def celsius_to_fahrenheit(celsius: float) -> int:
    return round(celsius * 9 / 5 + 32)


def mps_to_mph(mps: float) -> int:
    return round(mps * 2.237)


def parse_weather(payload: dict[str, Any]) -> WeatherData:
    """Convert an OpenWeatherMap metric response.

    Raises:
        WeatherError: If required fields are missing.
    """
    try:
        condition = payload["weather"][0]
        return WeatherData(
            temperature=celsius_to_fahrenheit(float(payload["main"]["temp"])),
            description=str(condition["description"]),
            icon=str(condition["icon"]),
            wind_speed=mps_to_mph(float(payload["wind"]["speed"])),
            humidity=int(payload["main"]["humidity"]),
        )
    except (KeyError, IndexError, TypeError, ValueError) as exc:
        msg = "Malformed weather response"
        raise WeatherError(msg) from exc


def synthetic_weather(lat: float, rng: random.Random | None = None) -> WeatherData:
    rng = rng or random.Random()
    base_temp = 65 + (REFERENCE_LATITUDE - lat) * 20
    description, icon = rng.choice(MOCK_CONDITIONS)
    return WeatherData(
        temperature=round(base_temp + rng.random() * 5),
        description=description,
        icon=icon,
        wind_speed=round(5 + rng.random() * 10),
        humidity=round(50 + rng.random() * 30),
        is_mock_data=True,
    )


class WeatherClient:
    """Per-station weather with a short cache and a synthetic fallback."""

    def __init__(
        self,
        *,
        url: str | None = None,
        api_key: str | None = None,
        timeout_sec: int | None = None,
        ttl_sec: int | None = None,
        rng: random.Random | None = None,
    ) -> None:
        settings = get_settings()
        self._url = url or settings.weather_api_url
        self._api_key = api_key if api_key is not None else settings.weather_api_key
        self._timeout_sec = timeout_sec or settings.weather_timeout_sec
        self._ttl_sec = ttl_sec if ttl_sec is not None else settings.weather_ttl_sec
        self._rng = rng or random.Random()
        self._caches: dict[str, TtlCache[WeatherData]] = {}

    async def weather_for(self, station: Station) -> WeatherData:
        if not self._api_key:
            logger.warning("WEATHER_API_KEY not configured, using synthetic weather")
            return synthetic_weather(station.lat, self._rng)

        cache = self._caches.setdefault(station.id, TtlCache(self._ttl_sec))
        cached = cache.get()
        if cached is not None:
            return cached

        params = {"lat": station.lat, "lon": station.lon, "appid": self._api_key, "units": "metric"}
        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self._timeout_sec)) as client:
                response = await client.get(self._url, params=params)
                response.raise_for_status()
            weather = parse_weather(response.json())
        except (httpx.HTTPStatusError, httpx.RequestError, ValueError, WeatherError) as exc:
            logger.error("Weather lookup failed", station=station.id, error=str(exc))
            return synthetic_weather(station.lat, self._rng)

        cache.set(weather)
        return weather


_client_instance: WeatherClient | None = None


def get_weather_client() -> WeatherClient:
    """Get or create the singleton weather client."""
    global _client_instance
    if _client_instance is None:
        _client_instance = WeatherClient()
    return _client_instance


def reset_weather_client() -> None:
    """Reset the singleton (for testing)."""
    global _client_instance
    _client_instance = None
