"""
Database engine and session management for RideMyLay realtime.

Initialization is lazy: the engine is created on first use from the
DatabaseConfig passed in (or the application config).
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from ..config import DatabaseConfig, get_config
from ..models import Base
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class DatabaseManager:
    """
    Owns the async engine and session maker.

    One instance lives on the FastAPI app state; tests build their own
    against an in-memory SQLite database.
    """

    def __init__(self, database_config: DatabaseConfig | None = None) -> None:
        self._config = database_config
        self.engine: AsyncEngine | None = None
        self.session_maker: async_sessionmaker[AsyncSession] | None = None

    def _initialize_database(self) -> None:
        config = self._config or get_config().database
        url = config.url

        engine_kwargs: dict[str, Any] = {"echo": config.echo}
        if url.startswith("sqlite") and ":memory:" in url:
            # Every session must see the same in-memory database
            engine_kwargs["poolclass"] = StaticPool
        elif url.startswith("postgresql"):
            engine_kwargs["pool_pre_ping"] = True

        self.engine = create_async_engine(url, **engine_kwargs)
        self.session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info("Database engine created", dialect=self.engine.dialect.name)

    def get_engine(self) -> AsyncEngine:
        if self.engine is None:
            self._initialize_database()
        assert self.engine is not None, "Database engine not initialized"
        return self.engine

    def get_session_maker(self) -> async_sessionmaker[AsyncSession]:
        if self.session_maker is None:
            self._initialize_database()
        assert self.session_maker is not None, "Session maker not initialized"
        return self.session_maker

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Open a session; the caller commits."""
        async with self.get_session_maker()() as session:
            yield session

    async def create_schema(self) -> None:
        """Create all tables that do not exist yet."""
        async with self.get_engine().begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema ensured", tables=sorted(Base.metadata.tables))

    async def close(self) -> None:
        """Dispose of the engine. Safe to call more than once."""
        if self.engine is None:
            return
        engine = self.engine
        self.engine = None
        self.session_maker = None
        await engine.dispose()
        logger.info("Database connections closed")
