"""Async SQLAlchemy engine and session management."""

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from teguh_api.config import Settings
from teguh_api.storage.tables import Base

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class DatabaseManager:
    """Owns the engine and its bounded connection pool."""

    def __init__(self, settings: Settings):
        self._settings = settings
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None

    def connect(self) -> None:
        """Create the engine. Pool exhaustion queues for ``database_pool_timeout`` seconds."""
        if self._engine is not None:
            return

        url = make_url(self._settings.database_url)
        kwargs: dict[str, Any] = {
            "echo": self._settings.database_echo,
            "pool_pre_ping": True,
        }
        if url.get_backend_name() == "sqlite":
            # sqlite3 busy timeout: concurrent writers wait for the lock instead of failing
            kwargs["connect_args"] = {"timeout": self._settings.database_pool_timeout}
        if not (url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")):
            kwargs["pool_size"] = self._settings.database_pool_size
            kwargs["max_overflow"] = self._settings.database_max_overflow
            kwargs["pool_timeout"] = self._settings.database_pool_timeout

        self._engine = create_async_engine(url, **kwargs)
        if url.get_backend_name() == "sqlite":
            event.listen(self._engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

        self._sessionmaker = async_sessionmaker(self._engine, expire_on_commit=False)
        logger.info("Database engine created for %s", url.render_as_string(hide_password=True))

    async def create_schema(self) -> None:
        """Create missing tables."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def disconnect(self) -> None:
        """Dispose of the engine and its pool."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._sessionmaker = None
            logger.info("Database engine disposed")

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("DatabaseManager.connect() has not been called")
        return self._engine

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Yield a session; rolled back if the block raises."""
        if self._sessionmaker is None:
            raise RuntimeError("DatabaseManager.connect() has not been called")
        async with self._sessionmaker() as session:
            try:
                yield session
            except BaseException:
                await session.rollback()
                raise

    async def health_check(self) -> dict[str, Any]:
        """Check database health."""
        if self._engine is None:
            return {"status": "disconnected", "latency_ms": None}

        try:
            start = time.perf_counter()
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            latency = (time.perf_counter() - start) * 1000
            return {"status": "up", "latency_ms": round(latency, 2)}
        except SQLAlchemyError as e:
            return {"status": "error", "error": str(e), "latency_ms": None}
