"""
Query Result Helpers.

Convert rows streamed from a Neo4j result into typed pydantic models.
"""

from collections.abc import Mapping
from typing import Any, TypeVar

import structlog
from neo4j import AsyncResult, Record
from pydantic import BaseModel, ValidationError

logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class QueryError(Exception):
    """Base class for failures while building or reading a query."""


class NoRecordsFoundError(QueryError):
    """Raised by single() when the query returned no rows."""

    def __init__(self, message: str = "No records were found"):
        super().__init__(message)


class DeserializationError(QueryError):
    """Raised when a row cannot be converted into the requested model."""


class SerializationError(QueryError):
    """Raised when a value cannot be turned into a query parameter."""


def _to_native(value: Any) -> Any:
    # neo4j.time.DateTime and friends expose to_native()
    if hasattr(value, "to_native"):
        return value.to_native()
    if isinstance(value, list):
        return [_to_native(v) for v in value]
    if isinstance(value, Mapping):
        return {k: _to_native(v) for k, v in value.items()}
    return value


def record_to_properties(record: Record) -> dict[str, Any]:
    """
    Flatten a result row into a property mapping.

    A single-column row holding a node (or map) yields that node's
    properties, so ``RETURN m`` converts the same way as ``RETURN m {.*}``.
    Any other row yields a column -> value mapping.
    """
    if len(record) == 1:
        value = record[0]
        if hasattr(value, "items"):
            return {key: _to_native(v) for key, v in value.items()}
    return {key: _to_native(v) for key, v in record.items()}


def to_model(record: Record, model: type[ModelT]) -> ModelT:
    """Convert one row into ``model``, raising DeserializationError on failure."""
    try:
        return model.model_validate(record_to_properties(record))
    except ValidationError as e:
        raise DeserializationError(
            f"Failed to deserialize query result into {model.__name__}: {e}"
        ) from e


async def get_single(result: AsyncResult, model: type[ModelT]) -> ModelT | None:
    """
    Read the first row of ``result`` as ``model``.

    Safe variant of single(): zero rows yields None instead of an error.
    """
    records = await result.fetch(1)
    if not records:
        return None
    # OPTIONAL MATCH ... RETURN m yields a single null column
    if len(records[0]) == 1 and records[0][0] is None:
        return None
    return to_model(records[0], model)


async def single(result: AsyncResult, model: type[ModelT]) -> ModelT:
    """Read the first row of ``result`` as ``model``; zero rows is an error."""
    found = await get_single(result, model)
    if found is None:
        raise NoRecordsFoundError()
    return found


async def fetch_all(result: AsyncResult, model: type[ModelT]) -> list[ModelT]:
    """
    Read every row of ``result`` as ``model``.

    Rows that do not convert are skipped.
    """
    output: list[ModelT] = []
    async for record in result:
        try:
            output.append(to_model(record, model))
        except DeserializationError as e:
            logger.debug("Skipping unconvertible row", model=model.__name__, error=str(e))
    return output
