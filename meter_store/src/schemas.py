"""
Pydantic value types for meter records.

``RecordCreate`` is what an ingestor hands to ``RecordStore.append``;
``Record`` is what the store hands back from reads. Both are immutable.
Every register except ``timestamp`` is optional, and an absent register is
``None``, never ``0``.

CHANGELOG:
- 2026-10-18: Bound integer codes to the 32-bit column range (STORY-011)
- 2026-10-15: Accept integral floats and aware datetimes for timestamp (STORY-009)
- 2026-10-12: Initial creation (STORY-002)

TODO:
- None
"""

import math
from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Signed 64-bit bounds of the timestamp column.
_TIMESTAMP_MIN = -(2**63)
_TIMESTAMP_MAX = 2**63 - 1

# Optional register columns, in table order.
OPTIONAL_FIELDS: tuple[str, ...] = (
    "delivered_1",
    "delivered_2",
    "received_1",
    "received_2",
    "current_tariff",
    "actual_delivered",
    "actual_received",
    "max_power",
    "switch_mode",
)

# Cumulative/instantaneous energy and power readings.
Reading = Annotated[float, Field(strict=True)]
# Opaque integer codes (tariff band, relay state), sized for a 32-bit INTEGER column.
_CODE_MIN = -(2**31)
_CODE_MAX = 2**31 - 1
Code = Annotated[int, Field(strict=True, ge=_CODE_MIN, le=_CODE_MAX)]


def coerce_timestamp(value: Any) -> int:
    """Convert *value* to whole seconds since the epoch.

    Accepts ``int``, integral ``float`` and timezone-aware ``datetime``.

    Raises:
        ValueError: If the value cannot be represented as a signed 64-bit
            epoch second.
    """
    if isinstance(value, bool):
        raise ValueError("timestamp must be an integer epoch, not a boolean")
    if isinstance(value, datetime):
        if value.utcoffset() is None:
            raise ValueError("timestamp datetime must be timezone-aware")
        value = math.floor(value.timestamp())
    elif isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"timestamp must be a whole number of seconds, got {value!r}")
        value = int(value)
    elif not isinstance(value, int):
        raise ValueError(
            f"timestamp must be an integer epoch, got {type(value).__name__}"
        )
    if not _TIMESTAMP_MIN <= value <= _TIMESTAMP_MAX:
        raise ValueError(f"timestamp {value} is outside the 64-bit range")
    return value


class _RecordFields(BaseModel):
    """Fields shared by the append input and the stored record."""

    timestamp: int
    delivered_1: Reading | None = None
    delivered_2: Reading | None = None
    received_1: Reading | None = None
    received_2: Reading | None = None
    current_tariff: Code | None = None
    actual_delivered: Reading | None = None
    actual_received: Reading | None = None
    max_power: Reading | None = None
    switch_mode: Code | None = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def _timestamp_is_epoch_seconds(cls, v: Any) -> int:
        return coerce_timestamp(v)


class RecordCreate(_RecordFields):
    """One meter observation as supplied by an ingestor.

    ``timestamp`` is mandatory; all registers default to ``None`` (the meter
    did not report them). Unknown keys, NaN and infinity are rejected.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", allow_inf_nan=False)


class Record(_RecordFields):
    """One stored meter observation.

    Attributes:
        id: Surrogate key assigned by the store; never reused.

    ``model_fields_set`` lists the columns that were actually read, so a
    field-filtered range query can be told apart from a register that was
    absent at sample time.
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
