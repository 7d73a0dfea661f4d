"""
SQLAlchemy ORM models for the meter store database.

Defines the MeterRecord model for the single ``records`` table: a
store-assigned surrogate key, a mandatory epoch-second timestamp, and
nine nullable meter registers.

CHANGELOG:
- 2026-10-13: Add (timestamp, id) index for ordered range scans (STORY-004)
- 2026-10-12: Initial creation (STORY-002)

TODO:
- None
"""

from sqlalchemy import BigInteger, Double, Index, Integer
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# BIGINT everywhere except SQLite, where only "INTEGER PRIMARY KEY" aliases
# the rowid and AUTOINCREMENT is accepted.
_SurrogateKey = BigInteger().with_variant(Integer(), "sqlite")


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all meter store ORM models."""

    pass


class MeterRecord(Base):
    """Timestamped observation from an electricity meter.

    Rows are append-only. ``id`` is generated by the database (SQLite
    AUTOINCREMENT / PostgreSQL sequence) so values are never reused, even
    after rows are purged.

    Attributes:
        id: Surrogate key assigned on insert.
        timestamp: Sample time in seconds since the epoch (UTC).
        delivered_1: Cumulative energy delivered to the client, tariff 1.
        delivered_2: Cumulative energy delivered to the client, tariff 2.
        received_1: Cumulative energy received from the client, tariff 1.
        received_2: Cumulative energy received from the client, tariff 2.
        current_tariff: Active tariff band code.
        actual_delivered: Instantaneous power delivered.
        actual_received: Instantaneous power received.
        max_power: Peak power in the sampling interval.
        switch_mode: Relay/contactor state code.
    """

    __tablename__ = "records"
    __table_args__ = (
        Index("ix_records_timestamp_id", "timestamp", "id"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(
        _SurrogateKey, primary_key=True, autoincrement=True,
    )
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    delivered_1: Mapped[float | None] = mapped_column(Double, nullable=True)
    delivered_2: Mapped[float | None] = mapped_column(Double, nullable=True)
    received_1: Mapped[float | None] = mapped_column(Double, nullable=True)
    received_2: Mapped[float | None] = mapped_column(Double, nullable=True)
    current_tariff: Mapped[int | None] = mapped_column(Integer, nullable=True)
    actual_delivered: Mapped[float | None] = mapped_column(Double, nullable=True)
    actual_received: Mapped[float | None] = mapped_column(Double, nullable=True)
    max_power: Mapped[float | None] = mapped_column(Double, nullable=True)
    switch_mode: Mapped[int | None] = mapped_column(Integer, nullable=True)

    def __repr__(self) -> str:
        """Return string representation of the MeterRecord."""
        return f"MeterRecord(id={self.id!r}, timestamp={self.timestamp!r})"
