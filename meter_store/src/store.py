"""
Meter record store: append-only persistence of meter observations.

Operations:
- append(record): INSERT one record in its own transaction, return its id.
- get(record_id): point lookup by surrogate key.
- range_query(from_ts, to_ts, fields): stream records ordered by
  (timestamp, id) from a single read statement.
- purge(before_ts): DELETE every record older than a timestamp.
- ping(): SELECT 1 health probe.

Ids come from the database's own auto-increment (SQLite AUTOINCREMENT or a
PostgreSQL sequence) under its write lock; the store never computes
``MAX(id) + 1``. There is no update path.

Every operation takes an optional ``timeout`` in seconds. For writes the
timeout bounds everything up to the commit, so an expired timeout always
means nothing was committed.

CHANGELOG:
- 2026-10-15: Eager argument validation for range_query (STORY-009)
- 2026-10-14: Per-operation timeouts, purge serialization lock (STORY-006)
- 2026-10-13: Stream range queries with yield_per (STORY-004)
- 2026-10-12: Initial creation (STORY-003)

TODO:
- None
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Iterable, Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import Select, delete, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from meter_store.src.db.models import MeterRecord
from meter_store.src.errors import NotFoundError, StorageError, ValidationError
from meter_store.src.schemas import (
    OPTIONAL_FIELDS,
    Record,
    RecordCreate,
    coerce_timestamp,
)

logger = logging.getLogger(__name__)

# Driver and filesystem failures that mean the database did not do the work.
# TimeoutError subclasses OSError, so every handler re-raises it first.
_STORAGE_FAILURES = (SQLAlchemyError, OSError)

_DEFAULT_BATCH_SIZE = 500


def _describe(exc: PydanticValidationError) -> str:
    """Flatten pydantic errors into ``field: message`` pairs."""
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'record'}: {err['msg']}"
        for err in exc.errors()
    )


def validate_record(record: RecordCreate | Mapping[str, Any]) -> RecordCreate:
    """Return *record* as a validated :class:`RecordCreate`.

    Raises:
        ValidationError: If ``timestamp`` is missing or malformed, a
            register has the wrong type, or an unknown key is present.
    """
    if isinstance(record, RecordCreate):
        return record
    if not isinstance(record, Mapping):
        raise ValidationError(
            f"record must be a mapping or RecordCreate, got {type(record).__name__}"
        )
    try:
        return RecordCreate.model_validate(dict(record))
    except PydanticValidationError as exc:
        raise ValidationError(_describe(exc)) from exc


def _timestamp_bound(name: str, value: Any) -> int:
    try:
        return coerce_timestamp(value)
    except ValueError as exc:
        raise ValidationError(f"{name}: {exc}") from exc


def _select_columns(fields: Iterable[str] | None) -> list:
    """Columns to read: id, timestamp and the requested registers."""
    if fields is None:
        names = OPTIONAL_FIELDS
    else:
        requested = {fields} if isinstance(fields, str) else set(fields)
        unknown = requested - set(OPTIONAL_FIELDS) - {"id", "timestamp"}
        if unknown:
            raise ValidationError(
                f"Unknown field(s): {', '.join(sorted(unknown))}. "
                f"Must be among: {', '.join(OPTIONAL_FIELDS)}"
            )
        names = tuple(name for name in OPTIONAL_FIELDS if name in requested)
    table = MeterRecord.__table__
    return [table.c.id, table.c.timestamp, *(table.c[name] for name in names)]


class RecordStore:
    """Durable, ordered store of meter records.

    One instance is meant to be shared by every concurrent ingestor and
    reporter in the process; it holds no per-call state besides the purge
    lock.

    Args:
        session_factory: Async session factory bound to the database engine.
        batch_size: Rows fetched per round trip while streaming range queries.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        batch_size: int = _DEFAULT_BATCH_SIZE,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self._session_factory = session_factory
        self._batch_size = batch_size
        self._purge_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def append(
        self,
        record: RecordCreate | Mapping[str, Any],
        *,
        timeout: float | None = None,
    ) -> int:
        """Persist one record and return the id assigned to it.

        Args:
            record: ``RecordCreate`` or a mapping with ``timestamp`` and
                any of the optional registers.
            timeout: Seconds allowed before the commit starts.

        Returns:
            The new record's id, greater than every id handed out before.

        Raises:
            ValidationError: Invalid record; nothing was written.
            StorageError: The database failed; nothing was committed.
            TimeoutError: The timeout expired; nothing was committed.
        """
        values = validate_record(record)
        row = MeterRecord(**values.model_dump())
        try:
            async with self._session_factory() as session:
                # Leaving the session without commit rolls the insert back.
                async with asyncio.timeout(timeout):
                    session.add(row)
                    await session.flush()
                record_id = row.id
                await session.commit()
        except TimeoutError:
            raise
        except _STORAGE_FAILURES as exc:
            logger.warning(
                "Append at timestamp %d failed", values.timestamp, exc_info=True,
            )
            raise StorageError(f"Append failed: {exc}") from exc

        logger.debug("Appended record %d at timestamp %d", record_id, values.timestamp)
        return record_id

    async def get(self, record_id: int, *, timeout: float | None = None) -> Record:
        """Return the record with *record_id*.

        Raises:
            ValidationError: *record_id* is not an integer.
            NotFoundError: No record has this id (never assigned or purged).
            StorageError: The database failed.
        """
        if isinstance(record_id, bool) or not isinstance(record_id, int):
            raise ValidationError(f"record_id must be an integer, got {record_id!r}")
        try:
            async with asyncio.timeout(timeout):
                async with self._session_factory() as session:
                    row = await session.get(MeterRecord, record_id)
        except TimeoutError:
            raise
        except _STORAGE_FAILURES as exc:
            logger.warning("Lookup of record %d failed", record_id, exc_info=True)
            raise StorageError(f"Lookup of record {record_id} failed: {exc}") from exc

        if row is None:
            raise NotFoundError(record_id)
        return Record.model_validate(row)

    def range_query(
        self,
        from_timestamp: Any = None,
        to_timestamp: Any = None,
        fields: Iterable[str] | None = None,
    ) -> AsyncIterator[Record]:
        """Stream records with ``from_timestamp <= timestamp <= to_timestamp``.

        Records arrive ordered by timestamp, ties broken by id. Either bound
        may be ``None`` for an open range. Arguments are validated when
        called; rows are only read once iteration starts, and all of them
        come from one statement so appends committed after the query
        started may or may not appear while earlier ones always do.

        Args:
            from_timestamp: Inclusive lower bound (epoch seconds) or ``None``.
            to_timestamp: Inclusive upper bound (epoch seconds) or ``None``.
            fields: Optional register names to materialize. ``id`` and
                ``timestamp`` are always returned; unrequested registers
                are left out of ``Record.model_fields_set``.

        Returns:
            Async iterator of :class:`Record`. Close it (e.g. with
            ``contextlib.aclosing``) when abandoning it early.

        Raises:
            ValidationError: Bad bound or unknown field name.
        """
        stmt = select(*_select_columns(fields)).order_by(
            MeterRecord.timestamp, MeterRecord.id,
        )
        if from_timestamp is not None:
            lower = _timestamp_bound("from_timestamp", from_timestamp)
            stmt = stmt.where(MeterRecord.timestamp >= lower)
        if to_timestamp is not None:
            upper = _timestamp_bound("to_timestamp", to_timestamp)
            stmt = stmt.where(MeterRecord.timestamp <= upper)
        return self._stream(stmt.execution_options(yield_per=self._batch_size))

    async def purge(self, before_timestamp: Any, *, timeout: float | None = None) -> int:
        """Delete every record with ``timestamp < before_timestamp``.

        Purges run one at a time; appends and range queries are not
        blocked. Id assignment is unaffected.

        Returns:
            Number of records removed.

        Raises:
            ValidationError: *before_timestamp* is not an epoch second.
            StorageError: The database failed; nothing was deleted.
            TimeoutError: The timeout expired; nothing was deleted.
        """
        before = _timestamp_bound("before_timestamp", before_timestamp)
        stmt = (
            delete(MeterRecord)
            .where(MeterRecord.timestamp < before)
            .execution_options(synchronize_session=False)
        )
        deadline = None
        if timeout is not None:
            deadline = asyncio.get_running_loop().time() + timeout

        async with asyncio.timeout_at(deadline):
            await self._purge_lock.acquire()
        try:
            async with self._session_factory() as session:
                async with asyncio.timeout_at(deadline):
                    result = await session.execute(stmt)
                await session.commit()
        except TimeoutError:
            raise
        except _STORAGE_FAILURES as exc:
            logger.warning("Purge before %d failed", before, exc_info=True)
            raise StorageError(f"Purge failed: {exc}") from exc
        finally:
            self._purge_lock.release()

        deleted = result.rowcount
        logger.info("Purged %d records with timestamp < %d", deleted, before)
        return deleted

    async def ping(self, *, timeout: float | None = None) -> None:
        """Check the database answers ``SELECT 1``.

        Raises:
            StorageError: The database is unreachable or failing.
        """
        try:
            async with asyncio.timeout(timeout):
                async with self._session_factory() as session:
                    await session.execute(text("SELECT 1"))
        except TimeoutError:
            raise
        except _STORAGE_FAILURES as exc:
            raise StorageError(f"Database ping failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _stream(self, stmt: Select) -> AsyncIterator[Record]:
        try:
            async with self._session_factory() as session, session.begin():
                result = await session.stream(stmt)
                async for row in result.mappings():
                    yield Record.model_validate(dict(row))
        except _STORAGE_FAILURES as exc:
            logger.warning("Range query failed", exc_info=True)
            raise StorageError(f"Range query failed: {exc}") from exc
