"""
Redress Configuration

Centralized settings management using Pydantic BaseSettings.
All values are loaded from environment variables or a .env file.

Settings are built on first call to ``get_settings()`` rather than at
import time, so tests and scripts can adjust the environment first.
"""

from __future__ import annotations

from datetime import date
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings with environment variable binding.

    Required env vars (no defaults):
        POSTGRES_USER, POSTGRES_PASSWORD, POSTGRES_DB

    Everything else has a default tuned for the UK housing
    knowledge base (text-embedding-3-small, 1000/200 chunking).
    """

    PROJECT_NAME: str = "Redress Knowledge Core"

    # Database
    POSTGRES_USER: str
    POSTGRES_PASSWORD: str
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str

    # Embeddings
    OPENAI_API_KEY: str = ""
    EMBEDDING_MODEL: str = "text-embedding-3-small"
    EMBEDDING_DIMENSION: int = 1536
    EMBEDDING_BATCH_SIZE: int = 50

    # Chunking
    CHUNK_SIZE: int = 1000
    CHUNK_OVERLAP: int = 200
    MIN_TEXT_LENGTH: int = 50

    # Timeouts (seconds)
    FETCH_TIMEOUT: float = 30.0
    EMBEDDING_TIMEOUT: float = 30.0
    SEARCH_TIMEOUT: float = 10.0

    # Retrieval
    PRIMARY_THRESHOLD: float = 0.5
    PRIMARY_MATCH_COUNT: int = 7
    PRIMARY_QUERY_MAX_CHARS: int = 2000
    AUXILIARY_THRESHOLD: float = 0.3
    AUXILIARY_MATCH_COUNT: int = 3
    AUXILIARY_ALLOWANCE: int = 8

    # Conversation
    HISTORY_MAX_CHARS: int = 9000

    # Awaab's Law comes into force for social landlords on this date.
    AWAABS_LAW_ENFORCEMENT_DATE: date = date(2025, 10, 27)

    # Logging
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",  # Silently ignore unknown env vars
    )

    @property
    def DATABASE_URL(self) -> str:
        """Async PostgreSQL connection string using asyncpg driver."""
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings, loading them on first use."""
    return Settings()  # type: ignore[call-arg]
