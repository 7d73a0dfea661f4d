"""
Shared test fixtures for meter store tests.

Every test runs in its own temporary directory against a fresh on-disk
SQLite database, with all meter store environment variables removed.

CHANGELOG:
- 2026-10-13: Add client fixture for API tests (STORY-005)
- 2026-10-12: Initial creation (STORY-002)

TODO:
- None
"""

from pathlib import Path

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from meter_store.src.db.session import (
    create_engine,
    create_schema,
    create_session_factory,
)
from meter_store.src.main import app
from meter_store.src.store import RecordStore

# All Settings environment variable names, used for cleanup.
_ALL_ENV_VARS = (
    "DATABASE_URL",
    "SQLITE_BUSY_TIMEOUT_MS",
    "RANGE_QUERY_BATCH_SIZE",
    "OPERATION_TIMEOUT_S",
    "CREATE_SCHEMA",
    "LOG_LEVEL",
    "TELEGRAM_SOURCE",
    "API_HOST",
    "API_PORT",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Remove meter store env vars and isolate from .env files before each test."""
    for var in _ALL_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def db_url(tmp_path: Path) -> str:
    """URL of a per-test SQLite database file."""
    return f"sqlite+aiosqlite:///{tmp_path / 'records.db'}"


@pytest_asyncio.fixture()
async def engine(db_url: str):
    """Async engine on a database with the records table created."""
    engine = create_engine(db_url)
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture()
async def store(engine) -> RecordStore:
    """RecordStore with a small batch size so range queries span batches."""
    return RecordStore(create_session_factory(engine), batch_size=2)


@pytest_asyncio.fixture()
async def unmigrated_store(db_url: str):
    """RecordStore on a database without the records table."""
    engine = create_engine(db_url)
    yield RecordStore(create_session_factory(engine))
    await engine.dispose()


@pytest.fixture()
def client(monkeypatch: pytest.MonkeyPatch, db_url: str):
    """TestClient with the lifespan run against the per-test database."""
    monkeypatch.setenv("DATABASE_URL", db_url)
    with TestClient(app) as test_client:
        yield test_client
