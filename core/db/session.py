"""Database session manager."""

import contextlib
from typing import AsyncIterator

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncConnection,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)


class DatabaseSessionManager:
    """Async SQLAlchemy session manager."""

    def __init__(
        self,
        *,
        pool_size: int = 5,
        max_overflow: int = 2,
        pool_timeout: float = 10.0,
        pool_recycle: int = 300,
    ) -> None:
        """Constructor."""
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None
        self._pool_args = {
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "pool_timeout": pool_timeout,
            "pool_recycle": pool_recycle,
        }

    def init(self, url: str) -> None:
        """Initialize engine and sessionmaker."""
        # SQLite engines (tests, local runs) do not take queue pool sizing.
        is_sqlite = make_url(url).get_backend_name() == "sqlite"
        pool_args = {} if is_sqlite else self._pool_args
        self._engine = create_async_engine(url, pool_pre_ping=True, **pool_args)
        self._sessionmaker = async_sessionmaker(
            self._engine, expire_on_commit=False, autoflush=False
        )

    async def close(self) -> None:
        """Dispose engine and drop references."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._sessionmaker = None

    @contextlib.asynccontextmanager
    async def connect(self) -> AsyncIterator[AsyncConnection]:
        """Yield an AsyncConnection within a BEGIN block."""
        if self._engine is None:
            raise RuntimeError("DatabaseSessionManager is not initialized")
        async with self._engine.begin() as conn:
            yield conn

    @contextlib.asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Yield an AsyncSession; caller manages commit/rollback."""
        if self._sessionmaker is None:
            raise RuntimeError("DatabaseSessionManager is not initialized")
        session = self._sessionmaker()
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def create_all(self, connection: AsyncConnection, base) -> None:
        """Create all tables for the given DeclarativeBase."""
        await connection.run_sync(base.metadata.create_all)

    async def ping(self) -> None:
        """Round-trip a trivial statement."""
        async with self.connect() as conn:
            await conn.execute(text("SELECT 1"))
