"""PostgreSQL async connection for media metadata."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from ..exceptions import DependencyUnavailable

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""
    pass


class PostgresDatabase:
    """Engine and session factory holder.

    Created once in the application lifespan. ``url`` may point at any
    SQLAlchemy async driver; tests use ``sqlite+aiosqlite``. With asyncpg,
    ``query_timeout`` bounds both connecting and every statement.
    """

    def __init__(
        self,
        url: str,
        echo: bool = False,
        query_timeout: Optional[float] = None,
        **engine_kwargs,
    ):
        self.url = url
        self.echo = echo
        if query_timeout is not None and "+asyncpg" in url:
            connect_args = dict(engine_kwargs.get("connect_args") or {})
            connect_args.setdefault("timeout", query_timeout)
            connect_args.setdefault("command_timeout", query_timeout)
            engine_kwargs["connect_args"] = connect_args
        self.engine_kwargs = engine_kwargs
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    async def connect(self) -> None:
        """Create the engine and tables."""
        engine = create_async_engine(self.url, echo=self.echo, **self.engine_kwargs)

        # Create tables
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except Exception:
            await engine.dispose()
            raise

        self._engine = engine
        self._session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        logger.info("Metadata repository ready")

    async def disconnect(self) -> None:
        """Close PostgreSQL connection."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    def is_ready(self) -> bool:
        return self._session_factory is not None

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get database session. Commits on success, rolls back on error."""
        if not self._session_factory:
            raise DependencyUnavailable("Metadata repository is not connected")

        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
