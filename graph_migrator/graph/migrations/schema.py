"""
Migration Schema Models.

Defines the on-disk script model and the persisted chain node model.
"""

from datetime import datetime

from pydantic import BaseModel, Field

MIGRATION_LABEL = "DataModelMigration"


class FileMigration(BaseModel):
    """A migration script discovered on disk."""

    checksum: str = Field(..., description="SHA-256 hex digest of the script text")
    file_name: str = Field(..., description="Final path component of the script")
    cypher_text: str = Field(..., description="Full script text, executed as one unit")


class MigrationRecord(BaseModel):
    """A DataModelMigration node in the migration chain."""

    checksum: str = Field(..., description="Checksum of the script when it was applied")
    file_name: str = Field(..., description="Script file name (natural key)")
    # Holds the file name, not the script body
    cypher_text: str = Field(..., description="Recorded script reference")
    version: int = Field(..., ge=0, description="Position of the script in its run, 1-based")
    timestamp: datetime = Field(..., description="When the migration was applied")
