"""
Observability Module.

Structured logging for migration runs.
"""

from graph_migrator.observability.logging import (
    LogContext,
    configure_logging,
)

__all__ = [
    "configure_logging",
    "LogContext",
]
