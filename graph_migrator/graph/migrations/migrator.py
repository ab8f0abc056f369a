"""
Graph Migrator for Neo4j.

Applies .cyp/.cypher scripts exactly once, in order, and records each
applied script as a DataModelMigration node. A script whose content changed
after it was applied stops the run.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import structlog

from graph_migrator.graph.migrations.loader import gather_migrations
from graph_migrator.graph.migrations.schema import (
    MIGRATION_LABEL,
    FileMigration,
    MigrationRecord,
)
from graph_migrator.graph.neo4j_client import GraphClient
from graph_migrator.graph.parameterize import parameterize
from graph_migrator.graph.query import fetch_all, get_single
from graph_migrator.observability.logging import LogContext

logger = structlog.get_logger(__name__)

CREATE_MIGRATION_NODE_QUERY = (
    Path(__file__).parent / "cypher" / "create_migration_node.cypher"
).read_text(encoding="utf-8")

GET_MIGRATION_QUERY = (
    f"MATCH (m:{MIGRATION_LABEL} {{ file_name: $migration_file_name }}) RETURN m"
)

LIST_MIGRATIONS_QUERY = (
    f"MATCH (m:{MIGRATION_LABEL}) RETURN m ORDER BY m.version, m.timestamp"
)

CREATE_CONSTRAINT_QUERY = (
    "CREATE CONSTRAINT data_model_migration_file_name IF NOT EXISTS "
    f"FOR (m:{MIGRATION_LABEL}) REQUIRE m.file_name IS UNIQUE"
)


class MigrationError(Exception):
    """Base class for migration failures."""


class ChecksumMismatchError(MigrationError):
    """Raised when an applied script's content changed on disk."""

    def __init__(self, file_name: str, recorded_checksum: str, checksum: str):
        super().__init__(
            f"Migration checksum was mismatched for {file_name}: "
            f"recorded {recorded_checksum}, found {checksum}"
        )
        self.file_name = file_name
        self.recorded_checksum = recorded_checksum
        self.checksum = checksum


@dataclass
class MigrationReport:
    """
    Outcome of a migration run.

    ``planned`` is only filled by dry runs, in place of ``applied``.
    """

    applied: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    planned: list[str] = field(default_factory=list)
    dry_run: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "applied": self.applied,
            "skipped": self.skipped,
            "planned": self.planned,
            "dry_run": self.dry_run,
        }


class GraphMigrator:
    """
    Runs migrations from .cyp or .cypher files in a directory.

    Each applied migration becomes a DataModelMigration node carrying the
    script's checksum, so later runs can skip it or detect drift. The
    migrator holds no state; create a fresh one per run.

    Usage:
        ```python
        migrator = GraphMigrator()
        migrations = migrator.gather_migrations("migrations")
        report = await migrator.run_migrations(client, migrations)
        ```
    """

    def gather_migrations(self, folder_path: str | Path) -> list[FileMigration]:
        """Gather all migration scripts from the specified folder."""
        return gather_migrations(folder_path)

    async def setup(self, client: GraphClient, database: str | None = None) -> None:
        """
        Create the uniqueness constraint on DataModelMigration.file_name.

        Two runs racing on the same database then fail on the second chain
        write instead of recording a script twice.
        """
        async with client.transaction(database) as tx:
            result = await tx.run(CREATE_CONSTRAINT_QUERY)
            await result.consume()

        logger.info("Migration constraint ensured", label=MIGRATION_LABEL)

    async def run_migrations(
        self,
        client: GraphClient,
        migrations: list[FileMigration],
        database: str | None = None,
        *,
        dry_run: bool = False,
        single_transaction: bool = False,
    ) -> MigrationReport:
        """
        Apply migrations in the given order.

        Versions are the 1-based position of each script in ``migrations``;
        they do not continue from versions already in the chain.

        Args:
            client: Graph client
            migrations: Scripts in the order they must be applied
            database: Target database (defaults to the client's)
            dry_run: Check the chain but execute nothing
            single_transaction: Write each script and its chain node in
                one transaction instead of two

        Returns:
            MigrationReport listing applied/skipped (or planned) scripts

        Raises:
            ChecksumMismatchError: An applied script changed on disk
        """
        report = MigrationReport(dry_run=dry_run)

        with LogContext(database=database or client.database):
            logger.info("Running migrations", count=len(migrations), dry_run=dry_run)

            for counter, migration in enumerate(migrations):
                await self.up_migration(
                    counter,
                    client,
                    migration,
                    report,
                    database=database,
                    dry_run=dry_run,
                    single_transaction=single_transaction,
                )

            logger.info(
                "Migrations finished",
                applied=len(report.applied),
                skipped=len(report.skipped),
                planned=len(report.planned),
            )

        return report

    async def up_migration(
        self,
        counter: int,
        client: GraphClient,
        migration: FileMigration,
        report: MigrationReport,
        database: str | None = None,
        dry_run: bool = False,
        single_transaction: bool = False,
    ) -> None:
        """Apply one migration unless the chain already has it."""
        existing = await self.get_existing_migration(client, migration.file_name, database)

        if existing is not None:
            if existing.checksum != migration.checksum:
                logger.error(
                    "Migration checksum mismatch",
                    file_name=migration.file_name,
                    recorded_checksum=existing.checksum,
                    checksum=migration.checksum,
                )
                raise ChecksumMismatchError(
                    migration.file_name, existing.checksum, migration.checksum
                )

            logger.info("Migration up to date, skipping", file_name=migration.file_name)
            report.skipped.append(migration.file_name)
            return

        if dry_run:
            logger.info("Migration pending", file_name=migration.file_name, version=counter + 1)
            report.planned.append(migration.file_name)
            return

        record = await self.create_migration_node(
            counter, client, migration, database, single_transaction
        )
        report.applied.append(migration.file_name)

        logger.info("Migration applied", file_name=migration.file_name, version=record.version)

    async def create_migration_node(
        self,
        counter: int,
        client: GraphClient,
        migration: FileMigration,
        database: str | None = None,
        single_transaction: bool = False,
    ) -> MigrationRecord:
        """
        Execute the script and append its node to the chain.

        By default the script and the chain node are committed in two
        separate transactions. A crash between the two commits leaves the
        script applied with no chain node, and the next run executes it again.
        """
        new_node = MigrationRecord(
            checksum=migration.checksum,
            file_name=migration.file_name,
            cypher_text=migration.file_name,
            version=counter + 1,
            timestamp=datetime.now(timezone.utc),
        )
        parameters = {"migrationNode": parameterize(new_node)}

        if single_transaction:
            async with client.transaction(database) as tx:
                result = await tx.run(migration.cypher_text)
                await result.consume()
                result = await tx.run(CREATE_MIGRATION_NODE_QUERY, parameters)
                await result.consume()
            return new_node

        async with client.transaction(database) as tx:
            result = await tx.run(migration.cypher_text)
            await result.consume()

        async with client.transaction(database) as tx:
            result = await tx.run(CREATE_MIGRATION_NODE_QUERY, parameters)
            await result.consume()

        return new_node

    async def get_existing_migration(
        self,
        client: GraphClient,
        name: str,
        database: str | None = None,
    ) -> MigrationRecord | None:
        """Look up the chain node recorded for ``name``, if any."""
        async with client.transaction(database) as tx:
            result = await tx.run(GET_MIGRATION_QUERY, {"migration_file_name": name})
            return await get_single(result, MigrationRecord)

    async def list_migrations(
        self,
        client: GraphClient,
        database: str | None = None,
    ) -> list[MigrationRecord]:
        """Return the whole chain ordered by version."""
        async with client.transaction(database) as tx:
            result = await tx.run(LIST_MIGRATIONS_QUERY)
            return await fetch_all(result, MigrationRecord)

    async def get_status(
        self,
        client: GraphClient,
        migrations: list[FileMigration],
        database: str | None = None,
    ) -> dict[str, Any]:
        """
        Compare scripts on disk with the chain without changing anything.

        Returns:
            Status dictionary with applied, pending and mismatched file names
        """
        applied: list[str] = []
        pending: list[str] = []
        mismatched: list[str] = []

        for migration in migrations:
            existing = await self.get_existing_migration(client, migration.file_name, database)
            if existing is None:
                pending.append(migration.file_name)
            elif existing.checksum != migration.checksum:
                mismatched.append(migration.file_name)
            else:
                applied.append(migration.file_name)

        chain = await self.list_migrations(client, database)

        return {
            "chain_length": len(chain),
            "applied": applied,
            "pending": pending,
            "mismatched": mismatched,
        }
