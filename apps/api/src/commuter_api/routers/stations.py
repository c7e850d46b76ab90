"""Station reference endpoint."""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel

from commuter_api.stations import STATIONS

router = APIRouter(tags=["stations"])


class Coordinates(BaseModel):
    lat: float
    lng: float


class StationOut(BaseModel):
    id: str
    name: str
    code: str
    coordinates: Coordinates


class StationsResponse(BaseModel):
    stations: list[StationOut]


@router.get("/stations", response_model=StationsResponse, summary="List stations north to south")
async def list_stations() -> StationsResponse:
    stations = [station.to_dict() for station in STATIONS]
    return StationsResponse.model_validate({"stations": stations})
