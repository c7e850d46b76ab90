"""ASGI entry point: ``uvicorn commuter_api.main:app``."""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from commuter_api.config import Settings, get_settings
from commuter_api.logging import get_logger, request_context, setup_logging
from commuter_api.routers.alerts import router as alerts_router
from commuter_api.routers.health import router as health_router
from commuter_api.routers.stations import router as stations_router
from commuter_api.routers.trains import router as trains_router
from commuter_api.services.enrichment.service_alerts import reset_service_alerts_client
from commuter_api.services.enrichment.weather import reset_weather_client
from commuter_api.services.trains import reset_train_query_service

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    settings = get_settings()
    logger.info("API starting", version=settings.app_version)

    missing = settings.missing_optional_env()
    if missing:
        logger.warning("Running on synthetic fallbacks for unconfigured sources", missing=missing)

    try:
        yield
    finally:
        reset_train_query_service()
        reset_service_alerts_client()
        reset_weather_client()
        logger.info("API stopped")


def _is_public_docs(settings: Settings) -> bool:
    return settings.environment != "production"


def create_app() -> FastAPI:
    """Build the application with routers, middleware and error handling."""
    settings = get_settings()
    docs = _is_public_docs(settings)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description=(
            "Upcoming Caltrain departures between two stations, with delays "
            "reconciled from GTFS-RT, operator alerts and the social feed."
        ),
        lifespan=lifespan,
        docs_url="/docs" if docs else None,
        redoc_url="/redoc" if docs else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.environment == "development" else [],
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )

    @app.middleware("http")
    async def tag_request(request: Request, call_next: Any) -> Any:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        with request_context(request_id=request_id, path=request.url.path):
            response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    for router in (health_router, trains_router, stations_router, alerts_router):
        app.include_router(router)

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled exception", exc_info=exc, path=request.url.path)
        return JSONResponse(
            status_code=500,
            content={"error": "internal_server_error", "message": "An unexpected error occurred"},
        )

    return app


app = create_app()
