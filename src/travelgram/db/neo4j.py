"""Neo4j async connection for the social graph."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from neo4j import AsyncGraphDatabase, AsyncDriver, AsyncSession

from ..config import Settings
from ..exceptions import DependencyUnavailable

logger = logging.getLogger(__name__)


class Neo4jDatabase:
    """Neo4j connection manager. One instance per process."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._driver: AsyncDriver | None = None

    async def connect(self) -> None:
        """Establish connection to Neo4j."""
        driver = AsyncGraphDatabase.driver(
            self.settings.neo4j_uri,
            auth=(self.settings.neo4j_user, self.settings.neo4j_password),
            connection_timeout=self.settings.storage_timeout_seconds,
            connection_acquisition_timeout=self.settings.query_timeout_seconds,
        )
        # Verify connection
        try:
            await driver.verify_connectivity()
        except Exception:
            await driver.close()
            raise

        self._driver = driver
        await self._init_constraints()
        logger.info(f"Neo4j connected: {self.settings.neo4j_uri}")

    async def disconnect(self) -> None:
        """Close Neo4j connection."""
        if self._driver:
            await self._driver.close()
            self._driver = None

    def is_ready(self) -> bool:
        return self._driver is not None

    @property
    def query_timeout(self) -> float:
        """Server-side transaction timeout applied to every repository query."""
        return self.settings.query_timeout_seconds

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get a Neo4j session as async context manager."""
        if not self._driver:
            raise DependencyUnavailable("Social graph store is not connected")
        session = self._driver.session()
        try:
            yield session
        finally:
            await session.close()

    async def _init_constraints(self) -> None:
        """Initialize Neo4j constraints and indexes."""
        statements = [
            "CREATE CONSTRAINT user_id IF NOT EXISTS FOR (u:User) REQUIRE u.id IS UNIQUE",
            "CREATE INDEX user_username IF NOT EXISTS FOR (u:User) ON (u.username)",
        ]
        async with self.session() as session:
            for statement in statements:
                result = await session.run(statement)
                await result.consume()
