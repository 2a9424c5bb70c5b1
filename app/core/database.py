"""Database engine and per-request transactions."""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def _engine_options(database_url: str, echo: bool, pool_size: int) -> dict:
    # SQLite files are opened per connection; pooling them buys nothing
    if pool_size == 0 or database_url.startswith("sqlite"):
        return {"echo": echo, "poolclass": NullPool}
    return {
        "echo": echo,
        "pool_size": pool_size,
        "max_overflow": 10,
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }


class DatabaseManager:
    """Owns the async engine and hands out one transactional session per request."""

    def __init__(self):
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    def init(self, database_url: str, echo: bool = False, pool_size: int = 5) -> None:
        """
        Create the engine and session factory.

        Args:
            database_url: SQLAlchemy async URL (postgresql+asyncpg://, sqlite+aiosqlite://)
            echo: Enable SQL query logging
            pool_size: Connection pool size (0 for NullPool)
        """
        if self.is_initialized:
            logger.warning("Database already initialized, skipping re-initialization")
            return

        self._engine = create_async_engine(database_url, **_engine_options(database_url, echo, pool_size))
        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info(f"Database engine created for dialect {self._engine.dialect.name}")

    async def close(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._session_factory = None
        logger.info("Database connection closed")

    async def create_all(self) -> None:
        """Create tables from metadata. Migrations own the production schema."""
        if self._engine is None:
            raise RuntimeError("Database not initialized. Call init() first.")
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """
        Yield a session whose work is one transaction.

        Committed when the consumer finishes, rolled back if it raised, so a
        refresh rotation or a registration whose SMS failed is all-or-nothing.
        """
        if self._session_factory is None:
            raise RuntimeError("Database not initialized. Call init() first.")

        async with self._session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
            await session.commit()

    async def check_connection(self) -> bool:
        if self._engine is None:
            return False

        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(f"Database connection check failed: {e}")
            return False
        return True

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None


# Global database manager instance
db_manager = DatabaseManager()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding the request's transactional session."""
    async with db_manager.transaction() as session:
        yield session
