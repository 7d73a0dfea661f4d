"""
Telegram ingest endpoint: raw P1 telegram text in, records out.

Accepts POST /v1/telegrams with the text of one or more DSMR telegrams,
parses every complete telegram and appends one record per telegram. All
records of a request share one timestamp, taken from the request body or
from the server clock when omitted.

CHANGELOG:
- 2026-10-16: Initial creation (STORY-010)

TODO:
- None
"""

import time
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, field_validator

from meter_store.src.api.deps import OperationTimeout, Store
from meter_store.src.schemas import coerce_timestamp
from meter_store.src.telegram import iter_frames, to_record

router = APIRouter(prefix="/v1", tags=["telegrams"])


class TelegramRequest(BaseModel):
    """Schema for the telegram ingest request body.

    Attributes:
        telegram: Raw telegram text, each telegram ending with a ``!`` line.
        timestamp: Sample time in epoch seconds; server time when omitted.
    """

    telegram: str
    timestamp: int | None = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def _timestamp_is_epoch_seconds(cls, v: Any) -> int | None:
        return None if v is None else coerce_timestamp(v)


class TelegramResponse(BaseModel):
    """Schema for the telegram ingest response.

    Attributes:
        ids: Ids of the stored records, one per telegram, in input order.
    """

    ids: list[int]


@router.post("/telegrams", status_code=201, response_model=TelegramResponse)
async def ingest_telegram(
    request: TelegramRequest,
    store: Store,
    timeout: OperationTimeout,
) -> TelegramResponse:
    """Parse telegrams and append one record per complete telegram.

    Telegrams are appended one by one; if a later append fails, the
    earlier ones stay stored.

    Raises:
        HTTPException: 422 if the text holds no complete telegram.
    """
    timestamp = request.timestamp if request.timestamp is not None else int(time.time())
    frames = list(iter_frames(request.telegram.splitlines()))
    if not frames:
        raise HTTPException(
            status_code=422,
            detail="No complete telegram found (missing '!' trailer line).",
        )

    ids = [
        await store.append(to_record(fields, timestamp), timeout=timeout)
        for fields in frames
    ]
    return TelegramResponse(ids=ids)
