"""
Initial schema: create the records table.

Creates ``records`` with a database-generated surrogate key, a mandatory
epoch-second timestamp, nine nullable meter registers, and a
(timestamp, id) index for ordered range scans.

Revision ID: 001
Revises: None
Create Date: 2026-10-12

CHANGELOG:
- 2026-10-13: Add ix_records_timestamp_id (STORY-004)
- 2026-10-12: Initial creation (STORY-002)

TODO:
- None
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# Revision identifiers used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the records table and its timestamp index.

    On SQLite the key is ``INTEGER PRIMARY KEY AUTOINCREMENT`` so ids of
    purged rows are never handed out again; elsewhere it is a BIGSERIAL.
    """
    op.create_table(
        "records",
        sa.Column(
            "id",
            sa.BigInteger().with_variant(sa.Integer(), "sqlite"),
            primary_key=True,
            autoincrement=True,
        ),
        sa.Column("timestamp", sa.BigInteger(), nullable=False),
        sa.Column("delivered_1", sa.Double(), nullable=True),
        sa.Column("delivered_2", sa.Double(), nullable=True),
        sa.Column("received_1", sa.Double(), nullable=True),
        sa.Column("received_2", sa.Double(), nullable=True),
        sa.Column("current_tariff", sa.Integer(), nullable=True),
        sa.Column("actual_delivered", sa.Double(), nullable=True),
        sa.Column("actual_received", sa.Double(), nullable=True),
        sa.Column("max_power", sa.Double(), nullable=True),
        sa.Column("switch_mode", sa.Integer(), nullable=True),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_records_timestamp_id", "records", ["timestamp", "id"])


def downgrade() -> None:
    """Drop the records table and its index."""
    op.drop_index("ix_records_timestamp_id", table_name="records")
    op.drop_table("records")
