"""
graph-migrator.

Applies Cypher migration scripts to a Neo4j database exactly once, in order.
"""

__version__ = "0.1.0"
