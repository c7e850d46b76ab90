"""Service alerts and weather shown alongside train results."""

from commuter_api.services.enrichment.service_alerts import (
    ServiceAlert,
    ServiceAlertsClient,
    get_service_alerts_client,
    map_severity,
)
from commuter_api.services.enrichment.weather import WeatherClient, WeatherData, get_weather_client

__all__ = [
    "ServiceAlert",
    "ServiceAlertsClient",
    "WeatherClient",
    "WeatherData",
    "get_service_alerts_client",
    "get_weather_client",
    "map_severity",
]
