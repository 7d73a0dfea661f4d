"""
Database package for SQLAlchemy models and session management.

CHANGELOG:
- 2026-10-13: Export create_schema (STORY-004)
- 2026-10-12: Initial creation (STORY-002)

TODO:
- None
"""

from meter_store.src.db.models import Base, MeterRecord
from meter_store.src.db.session import (
    create_engine,
    create_schema,
    create_session_factory,
)

__all__ = [
    "Base",
    "MeterRecord",
    "create_engine",
    "create_schema",
    "create_session_factory",
]
