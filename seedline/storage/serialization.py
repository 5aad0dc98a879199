"""
JSON serialization utilities for storage backends.

Payloads and output summaries are provider responses, so they are mostly
plain JSON; datetimes, UUIDs, Decimals, Enums and sets are tolerated.
"""

import json
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from .errors import SerializationError


class StorageEncoder(json.JSONEncoder):
    """
    JSON encoder for storage data.

    Handles:
    - datetime -> ISO format string
    - UUID -> string
    - Enum -> value
    - Decimal -> string (preserves precision)
    - set/frozenset -> list
    """

    def default(self, obj: Any) -> Any:
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, (set, frozenset)):
            return list(obj)

        if hasattr(obj, "__dict__"):
            return obj.__dict__

        return super().default(obj)


def serialize(data: Any) -> str:
    """
    Serialize data to JSON string.

    Raises:
        SerializationError: If serialization fails
    """
    try:
        return json.dumps(data, cls=StorageEncoder, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise SerializationError(
            message=f"Failed to serialize data: {e}",
            operation="serialize",
            data_type=type(data).__name__,
        ) from e


def deserialize(data: str | bytes | None) -> Any:
    """
    Deserialize JSON string to Python object. ``None`` stays ``None``.

    Raises:
        SerializationError: If deserialization fails
    """
    if data is None:
        return None
    if isinstance(data, bytes):
        data = data.decode("utf-8")

    try:
        return json.loads(data)
    except (json.JSONDecodeError, ValueError) as e:
        raise SerializationError(
            message=f"Failed to deserialize data: {e}",
            operation="deserialize",
        ) from e
