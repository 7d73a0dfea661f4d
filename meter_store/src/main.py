"""
FastAPI application entry point for the meter store API.

Builds the shared RecordStore at startup, registers the routers, and maps
store errors onto HTTP status codes.

CHANGELOG:
- 2026-10-16: Register telegrams router (STORY-010)
- 2026-10-14: Map TimeoutError to 504 (STORY-006)
- 2026-10-13: Initial creation (STORY-005)

TODO:
- None
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from meter_store.src.api.health import router as health_router
from meter_store.src.api.records import router as records_router
from meter_store.src.api.telegrams import router as telegrams_router
from meter_store.src.config import get_settings
from meter_store.src.db.session import (
    create_engine,
    create_schema,
    create_session_factory,
)
from meter_store.src.errors import NotFoundError, StorageError, ValidationError
from meter_store.src.logging_config import setup_logging
from meter_store.src.store import RecordStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: open the database and build the store."""
    settings = get_settings()
    engine = create_engine(settings.DATABASE_URL)
    try:
        if settings.CREATE_SCHEMA:
            await create_schema(engine)
        app.state.store = RecordStore(
            create_session_factory(engine),
            batch_size=settings.RANGE_QUERY_BATCH_SIZE,
        )
        logger.info(
            "Record store ready on %s",
            engine.url.render_as_string(hide_password=True),
        )
        yield
    finally:
        await engine.dispose()


app = FastAPI(
    title="Meter Store API",
    description="Append-only store for electricity meter readings.",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health_router)
app.include_router(records_router)
app.include_router(telegrams_router)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Invalid record or query argument -> 422."""
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    """Unknown record id -> 404."""
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    """Database failure -> 503; the operation did not take effect."""
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Storage unavailable."})


@app.exception_handler(TimeoutError)
async def timeout_handler(request: Request, exc: TimeoutError) -> JSONResponse:
    """Operation timeout -> 504; the operation did not take effect."""
    return JSONResponse(status_code=504, content={"detail": "Operation timed out."})


@app.get("/")
async def root() -> dict:
    """Liveness endpoint.

    Returns:
        dict: JSON object with application status.
    """
    return {"status": "ok"}


def serve() -> None:
    """Run the API with uvicorn (``meter-store-api``)."""
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)
    uvicorn.run(app, host=settings.API_HOST, port=settings.API_PORT, log_config=None)


if __name__ == "__main__":
    serve()
