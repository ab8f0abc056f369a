"""
Migration script discovery.

Lists a directory for Cypher scripts and fingerprints their contents.
Discovery is best-effort: anything that cannot be read is left out.
"""

import hashlib
from pathlib import Path

import structlog

from graph_migrator.graph.migrations.schema import FileMigration

logger = structlog.get_logger(__name__)

MIGRATION_EXTENSIONS = frozenset({".cyp", ".cypher"})


def calculate_checksum(content: str) -> str:
    """Calculate the SHA-256 hex digest of ``content``'s UTF-8 bytes."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def process_file(file_path: Path) -> FileMigration | None:
    """
    Build a FileMigration for a single path.

    Returns None when the path is not a .cyp/.cypher file or cannot be read
    as UTF-8 text.
    """
    if file_path.suffix not in MIGRATION_EXTENSIONS:
        return None

    try:
        # Raw bytes, so line endings count towards the checksum
        cypher_text = file_path.read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("Skipping unreadable migration", path=str(file_path), error=str(e))
        return None

    return FileMigration(
        checksum=calculate_checksum(cypher_text),
        file_name=file_path.name,
        cypher_text=cypher_text,
    )


def gather_migrations(folder_path: str | Path) -> list[FileMigration]:
    """
    Gather all migration scripts from ``folder_path``.

    Scripts come back in directory enumeration order, which the file system
    does not promise to be alphabetical. A missing or unreadable folder
    yields an empty list.
    """
    folder = Path(folder_path)
    try:
        entries = list(folder.iterdir())
    except OSError as e:
        logger.debug("Migration folder not readable", folder=str(folder), error=str(e))
        return []

    migrations = []
    for entry in entries:
        migration = process_file(entry)
        if migration is not None:
            migrations.append(migration)

    logger.debug("Migrations gathered", folder=str(folder), count=len(migrations))
    return migrations
