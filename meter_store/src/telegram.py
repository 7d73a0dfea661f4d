"""
DSMR P1 telegram parser.

Pure functions that turn the text lines of a smart meter's P1 port into
register dicts and :class:`RecordCreate` values. No I/O and no clock: the
sample timestamp is always injected by the caller.

A telegram is a header line, one ``<obis>(<value>[*<unit>])`` line per
register, and a ``!`` trailer line (optionally followed by a CRC). Values
may use exponent notation (``1.5e3``). Only the registers in
``OBIS_FIELDS`` are extracted; everything else is ignored. A register
the meter did not send stays absent.

CHANGELOG:
- 2026-10-18: Accept exponent notation, validate via the store (STORY-011)
- 2026-10-16: Accept CRC after the trailer, strip CR line endings (STORY-010)
- 2026-10-15: Initial creation (STORY-008)

TODO:
- None
"""

import math
import re
from collections.abc import Iterable, Iterator
from typing import Any

from meter_store.src.schemas import RecordCreate
from meter_store.src.store import validate_record

# OBIS reference -> (record field, value type).
OBIS_FIELDS: dict[str, tuple[str, type]] = {
    "1-0:1.8.1": ("delivered_1", float),
    "1-0:1.8.2": ("delivered_2", float),
    "1-0:2.8.1": ("received_1", float),
    "1-0:2.8.2": ("received_2", float),
    "0-0:96.14.0": ("current_tariff", int),
    "1-0:1.7.0": ("actual_delivered", float),
    "1-0:2.7.0": ("actual_received", float),
    "0-0:17.0.0": ("max_power", float),
    "0-0:96.3.10": ("switch_mode", int),
}

_LINE_RE = re.compile(
    r"^(?P<obis>\d+-\d+:\d+\.\d+\.\d+)"
    r"\((?P<value>[-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?)(?:\*[^)]*)?\)"
)

_TRAILER = "!"


def parse_line(line: str) -> tuple[str, float | int] | None:
    """Extract one known register from a telegram line.

    Integer registers are read as numbers and truncated, so ``0002`` and
    ``2.0`` both give ``2``.

    Args:
        line: A single telegram line, with or without line ending.

    Returns:
        ``(field, value)`` for a known OBIS register, otherwise ``None``.
    """
    match = _LINE_RE.match(line.strip())
    if match is None:
        return None
    target = OBIS_FIELDS.get(match["obis"])
    if target is None:
        return None
    field, kind = target
    value = float(match["value"])
    if not math.isfinite(value):
        return None
    return field, int(value) if kind is int else value


def parse_telegram(lines: Iterable[str]) -> dict[str, float | int]:
    """Parse the registers of a single telegram.

    Reading stops at the trailer line. When a register appears more than
    once, the last value wins.
    """
    fields: dict[str, float | int] = {}
    for line in lines:
        if line.strip().startswith(_TRAILER):
            break
        parsed = parse_line(line)
        if parsed is not None:
            field, value = parsed
            fields[field] = value
    return fields


def iter_frames(lines: Iterable[str]) -> Iterator[dict[str, float | int]]:
    """Split a continuous line stream into per-telegram register dicts.

    Each trailer line completes one frame and the next frame starts empty.
    Lines after the last trailer form an incomplete telegram and are not
    yielded.
    """
    fields: dict[str, float | int] = {}
    for line in lines:
        if line.strip().startswith(_TRAILER):
            yield fields
            fields = {}
            continue
        parsed = parse_line(line)
        if parsed is not None:
            field, value = parsed
            fields[field] = value


def to_record(fields: dict[str, float | int], timestamp: Any) -> RecordCreate:
    """Build a :class:`RecordCreate` from parsed registers.

    Args:
        fields: Output of :func:`parse_telegram` or :func:`iter_frames`.
        timestamp: Sample time as epoch seconds or an aware datetime.

    Raises:
        ValidationError: If *timestamp* is not a valid epoch second or a
            register does not fit its column.
    """
    return validate_record({"timestamp": timestamp, **fields})
