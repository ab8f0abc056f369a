"""
Pytest Configuration and Shared Fixtures.

This module provides shared fixtures for testing the graph migrator, including
an in-memory stand-in for the Neo4j transaction surface.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from neo4j import Record

from graph_migrator.config.settings import Settings, get_settings
from graph_migrator.graph.migrations.loader import calculate_checksum
from graph_migrator.graph.migrations.migrator import (
    CREATE_CONSTRAINT_QUERY,
    CREATE_MIGRATION_NODE_QUERY,
    GET_MIGRATION_QUERY,
    LIST_MIGRATIONS_QUERY,
)
from graph_migrator.graph.migrations.schema import FileMigration


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Provide test settings with mock values."""
    with patch.dict(
        "os.environ",
        {
            "NEO4J_URI": "bolt://localhost:7687",
            "NEO4J_USERNAME": "neo4j",
            "NEO4J_PASSWORD": "password123",
            "NEO4J_DATABASE": "migrations_test",
            "MIGRATIONS_FOLDER": "db/migrations",
        },
    ):
        # Clear cache and get fresh settings
        get_settings.cache_clear()
        settings = get_settings()
    get_settings.cache_clear()
    return settings


# =============================================================================
# In-memory Store
# =============================================================================


class StoreExecutionError(RuntimeError):
    """Stands in for a driver error raised while running a script."""


class ConstraintViolation(RuntimeError):
    """Stands in for a uniqueness constraint failure."""


class FakeResult:
    """Subset of neo4j.AsyncResult used by the query helpers."""

    def __init__(self, records: list[Record] | None = None) -> None:
        self._records = list(records or [])

    async def fetch(self, n: int) -> list[Record]:
        taken, self._records = self._records[:n], self._records[n:]
        return taken

    async def consume(self) -> None:
        self._records = []

    async def data(self) -> list[dict[str, Any]]:
        rows = [dict(r) for r in self._records]
        self._records = []
        return rows

    def __aiter__(self) -> "FakeResult":
        return self

    async def __anext__(self) -> Record:
        if not self._records:
            raise StopAsyncIteration
        return self._records.pop(0)


class FakeTransaction:
    """Stages writes until commit, like a real transaction."""

    def __init__(self, store: "FakeGraphStore", database: str) -> None:
        self._store = store
        self.database = database
        self.queries: list[str] = []
        self._staged_scripts: list[str] = []
        self._staged_nodes: list[dict[str, Any]] = []
        self._closed = False
        self.committed = False
        self.rolled_back = False

    async def run(self, query: str, parameters: dict[str, Any] | None = None) -> FakeResult:
        parameters = parameters or {}
        self.queries.append(query)

        if query == GET_MIGRATION_QUERY:
            name = parameters["migration_file_name"]
            return FakeResult(
                [Record({"m": dict(n)}) for n in self._store.nodes if n["file_name"] == name]
            )

        if query == LIST_MIGRATIONS_QUERY:
            ordered = sorted(self._store.nodes, key=lambda n: (n["version"], n["timestamp"]))
            return FakeResult([Record({"m": dict(n)}) for n in ordered])

        if query == CREATE_MIGRATION_NODE_QUERY:
            node = dict(parameters["migrationNode"])
            if self._store.unique_file_name and any(
                n["file_name"] == node["file_name"] for n in self._store.nodes
            ):
                raise ConstraintViolation(f"Node already exists: {node['file_name']}")
            if node["file_name"] in self._store.fail_record_writes:
                raise StoreExecutionError(f"record write failed: {node['file_name']}")
            self._staged_nodes.append(node)
            return FakeResult([Record({"m": node})])

        if query == CREATE_CONSTRAINT_QUERY:
            self._store.unique_file_name = True
            return FakeResult()

        if query in self._store.failures:
            raise self._store.failures[query]
        self._staged_scripts.append(query)
        return FakeResult()

    async def commit(self) -> None:
        self._store.executed.extend(self._staged_scripts)
        self._store.nodes.extend(self._staged_nodes)
        self.committed = True
        self._closed = True

    async def rollback(self) -> None:
        self.rolled_back = True
        self._closed = True

    async def close(self) -> None:
        self._closed = True

    def closed(self) -> bool:
        return self._closed


class FakeGraphStore:
    """
    In-memory replacement for GraphClient.

    Keeps DataModelMigration nodes as dicts and records every committed
    script body in ``executed``.
    """

    def __init__(self, database: str = "neo4j") -> None:
        self.database = database
        self.nodes: list[dict[str, Any]] = []
        self.executed: list[str] = []
        self.failures: dict[str, Exception] = {}
        self.fail_record_writes: set[str] = set()
        self.transactions: list[FakeTransaction] = []
        self.unique_file_name = False

    @asynccontextmanager
    async def transaction(
        self, database: str | None = None
    ) -> AsyncGenerator[FakeTransaction, None]:
        tx = FakeTransaction(self, database or self.database)
        self.transactions.append(tx)
        try:
            yield tx
        except BaseException:
            await tx.rollback()
            raise
        else:
            await tx.commit()

    def open_transactions(self) -> list[FakeTransaction]:
        return [tx for tx in self.transactions if not tx.closed()]

    def node(self, file_name: str) -> dict[str, Any] | None:
        for n in self.nodes:
            if n["file_name"] == file_name:
                return n
        return None


@pytest.fixture
def fake_store() -> FakeGraphStore:
    """Provide an empty in-memory store."""
    return FakeGraphStore()


# =============================================================================
# Neo4j Driver Fixtures
# =============================================================================


@pytest.fixture
def mock_driver() -> Any:
    """Patch AsyncGraphDatabase and return the mocked driver and session."""
    with patch("graph_migrator.graph.neo4j_client.AsyncGraphDatabase") as mock_db:
        mock_tx = MagicMock()
        mock_tx.run = AsyncMock()
        mock_tx.commit = AsyncMock()
        mock_tx.rollback = AsyncMock()
        mock_tx.close = AsyncMock()
        mock_tx.closed = MagicMock(return_value=False)

        mock_session = MagicMock()
        mock_session.begin_transaction = AsyncMock(return_value=mock_tx)
        mock_session.__aenter__ = AsyncMock(return_value=mock_session)
        mock_session.__aexit__ = AsyncMock(return_value=False)

        driver = MagicMock()
        driver.verify_connectivity = AsyncMock()
        driver.close = AsyncMock()
        driver.session.return_value = mock_session
        mock_db.driver.return_value = driver

        yield MagicMock(db=mock_db, driver=driver, session=mock_session, tx=mock_tx)



# =============================================================================
# Test Data Fixtures
# =============================================================================


def make_migration(file_name: str, cypher_text: str) -> FileMigration:
    """Create a FileMigration with a real checksum."""
    return FileMigration(
        checksum=calculate_checksum(cypher_text),
        file_name=file_name,
        cypher_text=cypher_text,
    )


@pytest.fixture
def sample_migrations() -> list[FileMigration]:
    """Three scripts in application order."""
    return [
        make_migration("001_people.cyp", "CREATE (:Person {name: 'Ada'})"),
        make_migration("002_index.cypher", "CREATE INDEX person_name IF NOT EXISTS FOR (p:Person) ON (p.name)"),
        make_migration("003_knows.cyp", "MATCH (a:Person) MERGE (a)-[:KNOWS]->(a)"),
    ]


@pytest.fixture
def migrations_dir(tmp_path: Path) -> Path:
    """A folder holding a mix of migration and non-migration files."""
    folder = tmp_path / "migrations"
    folder.mkdir()
    (folder / "a.cyp").write_text("CREATE (:Thing {id: 1})", encoding="utf-8")
    (folder / "b.cypher").write_text("CREATE (:Thing {id: 2})", encoding="utf-8")
    (folder / "b.txt").write_text("not a migration", encoding="utf-8")
    (folder / "README.md").write_text("# notes", encoding="utf-8")
    return folder
