"""
Health check endpoint that probes database connectivity.

Returns HTTP 200 when the record store's database answers, or HTTP 503
when it does not.

CHANGELOG:
- 2026-10-13: Initial creation (STORY-005)

TODO:
- None
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from meter_store.src.api.deps import Store
from meter_store.src.errors import StorageError
from meter_store.src.store import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

# Seconds the probe may take before the database counts as down.
_PROBE_TIMEOUT_S = 2.0


async def _check_db(store: RecordStore) -> str:
    """Probe the database with the store's SELECT 1 ping.

    Returns:
        "ok" if the ping succeeds, "error" otherwise.
    """
    try:
        await store.ping(timeout=_PROBE_TIMEOUT_S)
    except (StorageError, TimeoutError):
        logger.warning("Health check: DB probe failed", exc_info=True)
        return "error"
    return "ok"


@router.get("/health")
async def health_check(store: Store) -> JSONResponse:
    """Health check endpoint probing the database.

    Returns:
        JSONResponse: JSON with status and db fields.
            HTTP 200 when the database is ok, HTTP 503 when degraded.
    """
    db_status = await _check_db(store)
    ok = db_status == "ok"

    return JSONResponse(
        status_code=200 if ok else 503,
        content={
            "status": "ok" if ok else "degraded",
            "db": db_status,
        },
    )
