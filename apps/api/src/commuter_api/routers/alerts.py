"""Service alerts and weather endpoints.

Endpoints
---------
GET /alerts               – operator service alerts
GET /weather?station=...  – current weather at a station
"""

from __future__ import annotations

from typing import Annotated, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from commuter_api.services.enrichment.service_alerts import (
    ServiceAlertsClient,
    get_service_alerts_client,
)
from commuter_api.services.enrichment.weather import WeatherClient, get_weather_client
from commuter_api.stations import get_station_by_id

router = APIRouter(tags=["enrichment"])


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class ServiceAlertOut(BaseModel):
    id: str
    severity: Literal["info", "warning", "critical"]
    title: str
    description: str
    timestamp: str


class AlertsResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    alerts: list[ServiceAlertOut]
    is_mock_data: bool


class WeatherResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    temperature: int
    description: str
    icon: str
    wind_speed: int
    humidity: int
    is_mock_data: bool


# ---------------------------------------------------------------------------
# GET /alerts
# ---------------------------------------------------------------------------


@router.get("/alerts", response_model=AlertsResponse, summary="Current service alerts")
async def get_alerts(
    client: Annotated[ServiceAlertsClient, Depends(get_service_alerts_client)],
) -> AlertsResponse:
    result = await client.fetch_alerts()
    return AlertsResponse(
        alerts=[ServiceAlertOut.model_validate(alert.to_dict()) for alert in result.alerts],
        is_mock_data=result.is_mock_data,
    )


# ---------------------------------------------------------------------------
# GET /weather
# ---------------------------------------------------------------------------


@router.get("/weather", response_model=WeatherResponse, summary="Weather at a station")
async def get_weather(
    client: Annotated[WeatherClient, Depends(get_weather_client)],
    station: Annotated[Optional[str], Query(description="Station id")] = None,
) -> WeatherResponse:
    if not station:
        raise HTTPException(status_code=400, detail="Station ID is required")

    found = get_station_by_id(station)
    if found is None:
        raise HTTPException(status_code=400, detail="Invalid station ID")

    weather = await client.weather_for(found)
    return WeatherResponse.model_validate(weather.to_dict())
