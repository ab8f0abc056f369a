"""
Query parameter mapping.

Turns pydantic models into the property maps the Neo4j driver accepts as
query parameters.
"""

from collections.abc import Mapping
from datetime import date, datetime, time, timedelta
from typing import Any

from neo4j.spatial import Point
from neo4j.time import Date, DateTime, Duration, Time
from pydantic import BaseModel
from pydantic_core import PydanticSerializationError

from graph_migrator.graph.query import SerializationError

# Cypher integers are signed 64-bit
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

_SCALAR_TYPES = (
    str,
    float,
    bytes,
    bytearray,
    date,
    datetime,
    time,
    timedelta,
    Date,
    DateTime,
    Time,
    Duration,
    Point,
)


def _check_value(path: str, value: Any) -> None:
    if value is None or isinstance(value, bool):
        return
    if isinstance(value, int):
        if not _INT64_MIN <= value <= _INT64_MAX:
            raise SerializationError(
                f"Field '{path}' holds {value}, outside the 64-bit integer range"
            )
        return
    if isinstance(value, _SCALAR_TYPES):
        return
    if isinstance(value, (list, tuple)):
        for index, item in enumerate(value):
            _check_value(f"{path}[{index}]", item)
        return
    if isinstance(value, Mapping):
        for key, item in value.items():
            if not isinstance(key, str):
                raise SerializationError(
                    f"Field '{path}' has non-string map key {key!r}"
                )
            _check_value(f"{path}.{key}", item)
        return
    raise SerializationError(
        f"Field '{path}' of type {type(value).__name__} cannot be sent as a query parameter"
    )


def parameterize(instance: BaseModel) -> dict[str, Any]:
    """
    Convert a model into a parameter map for a Cypher query.

    Temporal fields stay as Python temporal values, which the driver maps to
    Cypher DATE/DATETIME/etc. Every field is kept; a value the driver cannot
    send raises SerializationError.

    Args:
        instance: Model to convert

    Returns:
        Mapping of field name to parameter value
    """
    try:
        properties = instance.model_dump(mode="python")
    except PydanticSerializationError as e:
        raise SerializationError(
            f"Failed to serialize {type(instance).__name__}: {e}"
        ) from e

    for key, value in properties.items():
        _check_value(key, value)

    return properties
