"""Database engine and session lifecycle.

Example:
    ```python
    from hooksafe.storage import Database

    async with Database("sqlite+aiosqlite:///./hooksafe.db") as db:
        async with db.session() as session:
            await session.execute(...)
    ```
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from hooksafe.exceptions import StorageError

from .tables import Base

logger = logging.getLogger(__name__)

# Seconds SQLite waits on a locked database before raising
SQLITE_BUSY_TIMEOUT = 30


class Database:
    """Owns the async engine and hands out sessions.

    Sessions from session() commit when the block exits normally and roll back
    when it raises, so callers never manage transactions by hand.
    """

    def __init__(
        self,
        url: str,
        echo: bool = False,
        create_tables: bool = True,
    ) -> None:
        """Initialize the database wrapper.

        Args:
            url: SQLAlchemy async URL (sqlite+aiosqlite://..., postgresql+asyncpg://...).
            echo: Echo SQL statements to the log.
            create_tables: Create missing tables during initialize().
        """
        self._url = url
        self._echo = echo
        self._create_tables = create_tables
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        """Get the engine, raising if not initialized."""
        if self._engine is None:
            raise StorageError("Database not initialized. Call initialize() first.")
        return self._engine

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    async def initialize(self) -> None:
        """Create the engine and, if configured, any missing tables."""
        if self._engine is not None:
            return

        connect_args: dict[str, Any] = {}
        if self._url.startswith("sqlite"):
            connect_args["timeout"] = SQLITE_BUSY_TIMEOUT

        self._engine = create_async_engine(
            self._url,
            echo=self._echo,
            pool_pre_ping=True,
            connect_args=connect_args,
        )
        self._sessionmaker = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

        if self._create_tables:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

        logger.info("Database initialized", extra={"dialect": self._engine.dialect.name})

    async def close(self) -> None:
        """Dispose of the engine and its connection pool."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._sessionmaker = None

    async def ping(self) -> bool:
        """Return True if a trivial query succeeds."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception:
            logger.warning("Database ping failed", exc_info=True)
            return False
        return True

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Open a session scoped to one unit of work."""
        if self._sessionmaker is None:
            raise StorageError("Database not initialized. Call initialize() first.")

        async with self._sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except BaseException:
                await session.rollback()
                raise

    async def __aenter__(self) -> Database:
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()
