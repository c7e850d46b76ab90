"""Train query endpoint.

Endpoints
---------
GET /trains   – next trains between two stations with reconciled delays
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from commuter_api.logging import get_logger
from commuter_api.services.schedule.instantiation import InvalidRouteError
from commuter_api.services.trains import TrainQueryService, get_train_query_service
from commuter_api.stations import UnknownStationError

logger = get_logger(__name__)

router = APIRouter(tags=["trains"])


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TrainOut(CamelModel):
    train_number: str
    trip_id: Optional[str] = None
    direction: Literal["Northbound", "Southbound"]
    departure_time: str
    arrival_time: str
    duration: int
    type: Literal["Local", "Limited", "Express"]
    delay: int
    status: Literal["on-time", "delayed", "cancelled"]
    delay_source: Optional[str] = None


class TrainsResponse(CamelModel):
    trains: list[TrainOut]
    is_mock_schedule: bool
    is_mock_delays: bool
    delay_source: str


# ---------------------------------------------------------------------------
# GET /trains
# ---------------------------------------------------------------------------


def parse_as_of(value: str | None) -> datetime | None:
    """Parse the ``date`` query parameter.

    Accepts ISO dates or datetimes; values without an offset are operator-local.

    Raises:
        HTTPException: 400 on an unparseable value.
    """
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid date: {value}") from exc


@router.get(
    "/trains",
    response_model=TrainsResponse,
    summary="Upcoming trains between two stations",
    description=(
        "Return the next scheduled trains from `origin` to `destination`, each "
        "with a delay reconciled from GTFS-RT, Caltrain.com alerts and the "
        "social feed. Flags report when schedule or delays are synthetic."
    ),
)
async def get_trains(
    service: Annotated[TrainQueryService, Depends(get_train_query_service)],
    origin: Annotated[Optional[str], Query(description="Origin station id")] = None,
    destination: Annotated[Optional[str], Query(description="Destination station id")] = None,
    date: Annotated[Optional[str], Query(description="ISO date or datetime; default now")] = None,
    alerts: Annotated[
        Optional[str],
        Query(description="Raw alert text parsed instead of the live alert page"),
    ] = None,
) -> TrainsResponse:
    if not origin or not destination:
        raise HTTPException(status_code=400, detail="Origin and destination are required")

    as_of = parse_as_of(date)

    try:
        result = await service.query(origin, destination, as_of=as_of, alert_text=alerts or None)
    except UnknownStationError as exc:
        raise HTTPException(status_code=400, detail="Invalid station ID") from exc
    except InvalidRouteError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return TrainsResponse.model_validate(result.to_dict())
