"""
Neo4j Schema Migration System.

Provides database migration capabilities:
- Discovery of .cyp/.cypher scripts in a folder
- Checksum tracking in a chain of DataModelMigration nodes
- Drift detection for scripts changed after they were applied
- Dry-run mode

Usage:
    ```python
    from graph_migrator.graph.migrations import migrate_folder

    # Apply all pending migrations
    report = await migrate_folder("migrations")
    ```
"""

from graph_migrator.graph.migrations.loader import (
    calculate_checksum,
    gather_migrations,
)
from graph_migrator.graph.migrations.migrator import (
    ChecksumMismatchError,
    GraphMigrator,
    MigrationError,
    MigrationReport,
)
from graph_migrator.graph.migrations.runner import migrate_folder
from graph_migrator.graph.migrations.schema import FileMigration, MigrationRecord

__all__ = [
    "GraphMigrator",
    "MigrationReport",
    "MigrationError",
    "ChecksumMismatchError",
    "FileMigration",
    "MigrationRecord",
    "calculate_checksum",
    "gather_migrations",
    "migrate_folder",
]
