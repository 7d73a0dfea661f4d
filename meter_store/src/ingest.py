"""
Telegram ingest runner: P1 line stream -> record store.

Reads DSMR telegram lines from a file or stdin (for example a serial port
piped through ``socat``), stamps every completed telegram with the current
UTC time and appends it to the store. A frame the store rejects is logged
and discarded; the runner never retries and never stops on a bad frame.

CHANGELOG:
- 2026-10-16: Initial creation (STORY-010)

TODO:
- None
"""

import asyncio
import logging
import sys
import time
from collections.abc import Callable, Iterable

from pydantic import BaseModel

from meter_store.src.config import Settings, get_settings
from meter_store.src.db.session import (
    create_engine,
    create_schema,
    create_session_factory,
)
from meter_store.src.errors import StorageError, ValidationError
from meter_store.src.logging_config import setup_logging
from meter_store.src.store import RecordStore
from meter_store.src.telegram import iter_frames

logger = logging.getLogger(__name__)


class IngestStats(BaseModel):
    """Counters for one ingest run.

    Attributes:
        frames: Complete telegrams read.
        appended: Telegrams stored.
        discarded: Telegrams the store rejected.
    """

    frames: int = 0
    appended: int = 0
    discarded: int = 0


def _epoch_now() -> int:
    return int(time.time())


async def ingest_lines(
    store: RecordStore,
    lines: Iterable[str],
    clock: Callable[[], int] = _epoch_now,
) -> IngestStats:
    """Append one record per complete telegram in *lines*.

    Args:
        store: Destination record store.
        lines: Telegram text, one line per item.
        clock: Returns the epoch second to stamp a frame with. Called once
            per frame, when the trailer line is read.

    Returns:
        IngestStats: How many frames were read, stored and discarded.
    """
    stats = IngestStats()
    for fields in iter_frames(lines):
        stats.frames += 1
        try:
            record_id = await store.append({"timestamp": clock(), **fields})
        except (ValidationError, StorageError):
            stats.discarded += 1
            logger.warning("Discarding telegram %d", stats.frames, exc_info=True)
            continue
        stats.appended += 1
        logger.info(
            "Stored telegram %d as record %d (%d registers)",
            stats.frames,
            record_id,
            len(fields),
        )
    return stats


async def run(settings: Settings) -> IngestStats:
    """Open the store from *settings* and ingest ``TELEGRAM_SOURCE``."""
    engine = create_engine(settings.DATABASE_URL)
    try:
        if settings.CREATE_SCHEMA:
            await create_schema(engine)
        store = RecordStore(
            create_session_factory(engine),
            batch_size=settings.RANGE_QUERY_BATCH_SIZE,
        )
        if settings.TELEGRAM_SOURCE == "-":
            return await ingest_lines(store, sys.stdin)
        with open(settings.TELEGRAM_SOURCE, encoding="ascii", errors="replace") as source:
            return await ingest_lines(store, source)
    finally:
        await engine.dispose()


def main() -> None:
    """Ingest runner entry point (``meter-store-ingest``)."""
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)
    logger.info("Ingesting telegrams from %s", settings.TELEGRAM_SOURCE)

    try:
        stats = asyncio.run(run(settings))
    except KeyboardInterrupt:
        logger.info("Ingest runner shutting down")
        return

    logger.info(
        "Ingest finished: %d frames, %d stored, %d discarded",
        stats.frames,
        stats.appended,
        stats.discarded,
    )


if __name__ == "__main__":
    main()
