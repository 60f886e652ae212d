from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api import router
from datastore.database import build_default_database
from datastore.seed import seed_demo_data
from logging_config import configure_logging
from services.sensors import build_default_service
from settings import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    service = build_default_service()
    if get_settings().seed_demo_data:
        written = seed_demo_data(service.store)
        if written:
            logger.info("Seeded demo readings", extra={"reading_count": written})
    try:
        yield
    finally:
        service.store.database.dispose()
        build_default_service.cache_clear()
        build_default_database.cache_clear()


async def envelope_http_exception(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "data": None, "error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def envelope_validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
    )
    return JSONResponse(
        status_code=422,
        content={"success": False, "data": None, "error": problems or "Invalid request."},
    )


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Sensor Insights",
        description="Bucketed aggregation and z-score anomaly detection for sensor readings.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_exception_handler(StarletteHTTPException, envelope_http_exception)
    app.add_exception_handler(RequestValidationError, envelope_validation_error)
    app.include_router(router)
    return app

app = create_app()
