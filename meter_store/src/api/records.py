"""
Records API: append, point lookup, range query and purge.

Thin HTTP layer over RecordStore. Store errors are turned into HTTP
responses by the exception handlers registered in ``main``.

CHANGELOG:
- 2026-10-15: Add fields filter to range query (STORY-009)
- 2026-10-13: Initial creation (STORY-005)

TODO:
- None
"""

import asyncio
from contextlib import aclosing
from typing import Annotated

from fastapi import APIRouter, Query
from pydantic import BaseModel

from meter_store.src.api.deps import OperationTimeout, Store
from meter_store.src.schemas import RecordCreate

router = APIRouter(prefix="/v1", tags=["records"])


# ---------------------------------------------------------------------------
# Pydantic response schemas
# ---------------------------------------------------------------------------


class AppendResponse(BaseModel):
    """Schema for the append response.

    Attributes:
        id: Id assigned to the new record.
    """

    id: int


class RangeResponse(BaseModel):
    """Schema for the range query response.

    Attributes:
        records: Records ordered by (timestamp, id). With a fields filter
            only ``id``, ``timestamp`` and the requested registers appear.
    """

    records: list[dict]


class PurgeResponse(BaseModel):
    """Schema for the purge response.

    Attributes:
        deleted: Number of records removed.
    """

    deleted: int


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.post("/records", status_code=201, response_model=AppendResponse)
async def append_record(
    record: RecordCreate,
    store: Store,
    timeout: OperationTimeout,
) -> AppendResponse:
    """Append one meter record.

    Args:
        record: Validated record; ``timestamp`` is mandatory.
        store: Shared record store.
        timeout: Optional operation timeout in seconds.

    Returns:
        AppendResponse: The id assigned to the record.
    """
    record_id = await store.append(record, timeout=timeout)
    return AppendResponse(id=record_id)


@router.get("/records/{record_id}")
async def get_record(
    record_id: int,
    store: Store,
    timeout: OperationTimeout,
) -> dict:
    """Return one record by id.

    Absent registers are returned as ``null``.

    Raises:
        NotFoundError: Mapped to HTTP 404.
    """
    record = await store.get(record_id, timeout=timeout)
    return record.model_dump()


@router.get("/records", response_model=RangeResponse)
async def query_records(
    store: Store,
    timeout: OperationTimeout,
    from_timestamp: Annotated[int | None, Query(alias="from")] = None,
    to_timestamp: Annotated[int | None, Query(alias="to")] = None,
    fields: Annotated[list[str] | None, Query()] = None,
) -> RangeResponse:
    """Return records with ``from <= timestamp <= to``.

    Args:
        store: Shared record store.
        timeout: Optional timeout in seconds for the whole query.
        from_timestamp: Inclusive lower bound, open when omitted.
        to_timestamp: Inclusive upper bound, open when omitted.
        fields: Registers to include (repeat the parameter for several).

    Returns:
        RangeResponse: Records in (timestamp, id) order.
    """
    records = store.range_query(from_timestamp, to_timestamp, fields)
    async with aclosing(records):
        async with asyncio.timeout(timeout):
            items = [record.model_dump(exclude_unset=True) async for record in records]
    return RangeResponse(records=items)


@router.delete("/records", response_model=PurgeResponse)
async def purge_records(
    before: int,
    store: Store,
    timeout: OperationTimeout,
) -> PurgeResponse:
    """Delete every record with ``timestamp < before``.

    Returns:
        PurgeResponse: Number of records removed.
    """
    deleted = await store.purge(before, timeout=timeout)
    return PurgeResponse(deleted=deleted)
