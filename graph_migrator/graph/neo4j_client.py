"""
Graph Client Module.

Thin async Neo4j client exposing the transactional surface the migrator needs:
sessions and explicit transactions scoped to a named database.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import structlog
from neo4j import AsyncDriver, AsyncGraphDatabase, AsyncSession, AsyncTransaction

from graph_migrator.config.settings import get_settings

logger = structlog.get_logger(__name__)


class GraphClient:
    """
    Neo4j client for migration runs.

    Owns the driver and hands out sessions and transactions against the
    configured database (or an explicitly named one).
    """

    def __init__(self, settings: Any = None) -> None:
        """Initialize the client with optional custom settings."""
        self._driver: AsyncDriver | None = None
        self._settings = settings or get_settings().neo4j

    @property
    def database(self) -> str:
        """Default database name used when none is given."""
        return self._settings.database

    async def connect(self) -> None:
        """Establish connection to Neo4j database."""
        if self._driver is not None:
            return

        self._driver = AsyncGraphDatabase.driver(
            self._settings.uri,
            auth=(self._settings.username, self._settings.password.get_secret_value()),
            max_connection_pool_size=self._settings.max_connection_pool_size,
        )
        await self._driver.verify_connectivity()
        logger.info("Connected to Neo4j", uri=self._settings.uri)

    async def close(self) -> None:
        """Close the database connection."""
        if self._driver is not None:
            await self._driver.close()
            self._driver = None
            logger.info("Disconnected from Neo4j")

    @asynccontextmanager
    async def session(self, database: str | None = None) -> AsyncGenerator[AsyncSession, None]:
        """Get a database session."""
        if self._driver is None:
            await self.connect()

        assert self._driver is not None  # Type guard for mypy
        async with self._driver.session(database=database or self.database) as session:
            yield session

    @asynccontextmanager
    async def transaction(
        self,
        database: str | None = None,
    ) -> AsyncGenerator[AsyncTransaction, None]:
        """
        Open an explicit transaction.

        Commits when the block exits normally and rolls back when it raises.
        Either way the transaction is closed before the session is released.

        Args:
            database: Target database (defaults to the configured one)
        """
        async with self.session(database) as session:
            tx = await session.begin_transaction()
            try:
                yield tx
            except BaseException:
                if not tx.closed():
                    await tx.rollback()
                    logger.debug("Transaction rolled back", database=database or self.database)
                raise
            else:
                await tx.commit()
            finally:
                if not tx.closed():
                    await tx.close()


# Singleton instance
_client: GraphClient | None = None


def get_graph_client() -> GraphClient:
    """Get the singleton GraphClient instance."""
    global _client
    if _client is None:
        _client = GraphClient()
    return _client
