"""
Graph Module.

Neo4j client, query result helpers and parameter mapping.
"""

from graph_migrator.graph.neo4j_client import GraphClient, get_graph_client
from graph_migrator.graph.parameterize import parameterize
from graph_migrator.graph.query import (
    DeserializationError,
    NoRecordsFoundError,
    QueryError,
    SerializationError,
    fetch_all,
    get_single,
    single,
)

__all__ = [
    # Client
    "GraphClient",
    "get_graph_client",
    # Queries
    "get_single",
    "single",
    "fetch_all",
    "parameterize",
    # Errors
    "QueryError",
    "NoRecordsFoundError",
    "DeserializationError",
    "SerializationError",
]
