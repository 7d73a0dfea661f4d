"""
FastAPI dependency injection providers.

Provides the shared RecordStore built at startup and the per-request
operation timeout for use with FastAPI's Depends() mechanism.

CHANGELOG:
- 2026-10-14: Add OperationTimeout dependency (STORY-006)
- 2026-10-13: Initial creation (STORY-005)

TODO:
- None
"""

from typing import Annotated

from fastapi import Depends, Request

from meter_store.src.config import get_settings
from meter_store.src.store import RecordStore


def get_store(request: Request) -> RecordStore:
    """Return the RecordStore created by the application lifespan.

    Args:
        request: Incoming request, used to reach ``app.state``.

    Returns:
        RecordStore: The process-wide store instance.
    """
    return request.app.state.store


def get_operation_timeout() -> float | None:
    """Return the configured per-operation timeout in seconds, if any."""
    return get_settings().OPERATION_TIMEOUT_S


# Annotated dependencies for use in route signatures:
#   async def my_route(store: Store, timeout: OperationTimeout): ...
Store = Annotated[RecordStore, Depends(get_store)]
OperationTimeout = Annotated[float | None, Depends(get_operation_timeout)]
