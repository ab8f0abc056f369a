"""
Migration runner.

Wires settings, the graph client and a fresh GraphMigrator into one call.
"""

from pathlib import Path

import structlog

from graph_migrator.config.settings import get_settings
from graph_migrator.graph.migrations.migrator import GraphMigrator, MigrationReport
from graph_migrator.graph.neo4j_client import GraphClient, get_graph_client
from graph_migrator.observability.logging import LogContext

logger = structlog.get_logger(__name__)


async def migrate_folder(
    folder_path: str | Path | None = None,
    client: GraphClient | None = None,
    *,
    database: str | None = None,
    dry_run: bool | None = None,
    ensure_constraint: bool | None = None,
    single_transaction: bool | None = None,
) -> MigrationReport:
    """
    Apply every pending script in a folder.

    Arguments left as None fall back to the MIGRATIONS_* settings.

    Args:
        folder_path: Directory holding .cyp/.cypher scripts
        client: Graph client (defaults to the shared one)
        database: Target database (defaults to the client's)
        dry_run: Check the chain without applying anything
        ensure_constraint: Create the file_name uniqueness constraint first
        single_transaction: Commit each script together with its chain node

    Returns:
        MigrationReport for the run
    """
    settings = get_settings().migrations
    folder = Path(folder_path if folder_path is not None else settings.folder)
    client = client or get_graph_client()
    if dry_run is None:
        dry_run = settings.dry_run
    if ensure_constraint is None:
        ensure_constraint = settings.ensure_constraint
    if single_transaction is None:
        single_transaction = settings.single_transaction

    migrator = GraphMigrator()

    with LogContext(folder=str(folder)):
        migrations = migrator.gather_migrations(folder)
        if not migrations:
            logger.info("No migrations found")

        if ensure_constraint and not dry_run:
            await migrator.setup(client, database)

        return await migrator.run_migrations(
            client,
            migrations,
            database,
            dry_run=dry_run,
            single_transaction=single_transaction,
        )
