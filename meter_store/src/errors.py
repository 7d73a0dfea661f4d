"""
Error taxonomy for the meter record store.

Every store operation surfaces failures synchronously as one of these
exceptions. The store never retries; retry policy belongs to the caller.

CHANGELOG:
- 2026-10-12: Initial creation (STORY-002)

TODO:
- None
"""


class RecordStoreError(Exception):
    """Base class for all meter record store errors."""


class ValidationError(RecordStoreError):
    """A record or query argument is malformed or a mandatory field is missing."""


class StorageError(RecordStoreError):
    """The underlying database failed to write, read, or delete."""


class NotFoundError(RecordStoreError):
    """Point lookup on an id that has no record."""

    def __init__(self, record_id: int) -> None:
        super().__init__(f"Record {record_id} not found")
        self.record_id = record_id
