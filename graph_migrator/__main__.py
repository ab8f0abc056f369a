"""
Run pending migrations using environment configuration.

    NEO4J_URI=bolt://localhost:7687 MIGRATIONS_FOLDER=./migrations python -m graph_migrator
"""

import asyncio
import sys

import structlog
from neo4j.exceptions import DriverError, Neo4jError

from graph_migrator.config.settings import get_settings
from graph_migrator.graph.migrations.migrator import MigrationError
from graph_migrator.graph.migrations.runner import migrate_folder
from graph_migrator.graph.neo4j_client import GraphClient
from graph_migrator.graph.query import QueryError
from graph_migrator.observability.logging import configure_logging

logger = structlog.get_logger(__name__)


async def _run() -> int:
    settings = get_settings()
    client = GraphClient(settings.neo4j)
    try:
        report = await migrate_folder(settings.migrations.folder, client)
    except (MigrationError, QueryError) as e:
        logger.error("Migration run failed", error=str(e))
        return 1
    except (Neo4jError, DriverError) as e:
        logger.error("Migration run failed", error=str(e), exc_info=True)
        return 1
    finally:
        await client.close()

    logger.info("Migration run complete", **report.to_dict())
    return 0


def main() -> None:
    settings = get_settings()
    configure_logging(level=settings.log_level, format=settings.observability.log_format)
    sys.exit(asyncio.run(_run()))


if __name__ == "__main__":
    main()
