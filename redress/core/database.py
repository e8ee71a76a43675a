"""
Database Layer

Async database setup for the knowledge store.

Design:
    - No module-level engine: a ``Database`` is constructed by the
      process entry point (API lifespan or CLI) and passed to whatever
      needs sessions.
    - ``session_factory`` is a reusable async session maker.
    - ``dispose`` must be awaited at shutdown.
"""

from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from redress.core.config import Settings

logger = logging.getLogger(__name__)


class Database:
    """
    Owns one async engine and its session factory.

    Usage::

        db = Database(settings)
        async with db.session_factory() as session:
            ...
        await db.dispose()
    """

    def __init__(self, settings: Settings, *, pool_size: int = 5) -> None:
        self._engine: AsyncEngine = create_async_engine(
            settings.DATABASE_URL,
            echo=False,
            pool_size=pool_size,
        )
        self._session_factory = async_sessionmaker(
            self._engine,
            expire_on_commit=False,
        )
        logger.info(
            "Database engine created: %s@%s/%s",
            settings.POSTGRES_USER,
            settings.POSTGRES_HOST,
            settings.POSTGRES_DB,
        )

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        return self._session_factory

    async def ping(self) -> None:
        """Run ``SELECT 1``; raises if the database is unreachable."""
        async with self._engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def dispose(self) -> None:
        """Dispose the engine at shutdown."""
        await self._engine.dispose()
        logger.info("Database engine disposed")
