"""
Meter store configuration from environment variables using Pydantic BaseSettings.

All configuration values are loaded from environment variables or a .env
file at startup. Defaults target an embedded SQLite database so the store
runs without any external service.

CHANGELOG:
- 2026-10-14: Add OPERATION_TIMEOUT_S and TELEGRAM_SOURCE (STORY-006)
- 2026-10-12: Initial creation (STORY-001)

TODO:
- None
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Meter store settings loaded from environment variables.

    Attributes:
        DATABASE_URL: SQLAlchemy async URL (aiosqlite or asyncpg driver).
        SQLITE_BUSY_TIMEOUT_MS: How long a SQLite connection waits on a
            locked database before failing.
        RANGE_QUERY_BATCH_SIZE: Rows fetched per round trip while streaming
            a range query.
        OPERATION_TIMEOUT_S: Per-request timeout applied by the HTTP API.
            ``None`` disables it.
        CREATE_SCHEMA: Create the records table at startup when missing.
        LOG_LEVEL: Root logging level name.
        TELEGRAM_SOURCE: File path the ingest runner reads telegrams from,
            ``-`` for stdin.
        API_HOST: Interface the HTTP API binds to.
        API_PORT: Port the HTTP API listens on.
    """

    DATABASE_URL: str = "sqlite+aiosqlite:///./dev.db"
    SQLITE_BUSY_TIMEOUT_MS: int = 5000
    RANGE_QUERY_BATCH_SIZE: int = 500
    OPERATION_TIMEOUT_S: float | None = None
    CREATE_SCHEMA: bool = True
    LOG_LEVEL: str = "INFO"
    TELEGRAM_SOURCE: str = "-"
    API_HOST: str = "127.0.0.1"
    API_PORT: int = 8000

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @field_validator("SQLITE_BUSY_TIMEOUT_MS")
    @classmethod
    def busy_timeout_must_not_be_negative(cls, v: int) -> int:
        """Validate the SQLite busy timeout is >= 0."""
        if v < 0:
            raise ValueError("SQLITE_BUSY_TIMEOUT_MS must be >= 0")
        return v

    @field_validator("RANGE_QUERY_BATCH_SIZE")
    @classmethod
    def batch_size_must_be_valid(cls, v: int) -> int:
        """Validate range query batch size is between 1 and 10000."""
        if v < 1 or v > 10000:
            raise ValueError("RANGE_QUERY_BATCH_SIZE must be >= 1 and <= 10000")
        return v

    @field_validator("OPERATION_TIMEOUT_S")
    @classmethod
    def timeout_must_be_positive(cls, v: float | None) -> float | None:
        """Validate the operation timeout is positive when set."""
        if v is not None and v <= 0:
            raise ValueError("OPERATION_TIMEOUT_S must be > 0")
        return v


def get_settings() -> Settings:
    """Create and return a Settings instance.

    Returns:
        Settings: Validated configuration from environment variables.
    """
    return Settings()
