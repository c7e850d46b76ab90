"""Liveness and data-source status.

GET /health reports ``healthy`` only when a timetable is loaded and every
optional credential is configured; otherwise ``degraded`` with the reasons.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any

from fastapi import APIRouter, Depends

from commuter_api.config import get_settings
from commuter_api.services.schedule.sources import GtfsScheduleSource
from commuter_api.services.trains import TrainQueryService, get_train_query_service

router = APIRouter(tags=["meta"])


def timetable_status(service: TrainQueryService) -> dict[str, Any] | None:
    """Store status of the GTFS-backed schedule, None for other sources."""
    if isinstance(service.schedule, GtfsScheduleSource):
        return service.schedule.store.status()
    return None


@router.get("/health")
async def health_check(
    service: Annotated[TrainQueryService, Depends(get_train_query_service)],
) -> dict[str, Any]:
    settings = get_settings()
    missing_env = settings.missing_optional_env()
    timetable = timetable_status(service)

    issues: list[str] = []
    if missing_env:
        issues.append("Optional credentials not configured: " + ", ".join(missing_env))
    if not (timetable and timetable["trips"]):
        issues.append("No timetable loaded; schedules will be synthetic until one is")

    return {
        "service": settings.app_name,
        "status": "degraded" if issues else "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {"timetable": timetable},
        "issues": issues,
    }
