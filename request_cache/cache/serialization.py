"""
JSON exchange format for cached values.
"""

import json
from typing import Any, Optional, Union

from ..shared.errors import SerializationError


def dumps(value: Any) -> str:
    """Serialize a value to JSON text."""
    try:
        return json.dumps(value, ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise SerializationError(
            f"Value is not JSON serializable: {exc}",
            details={"value_type": type(value).__name__},
        ) from exc


def loads(data: Optional[Union[str, bytes]]) -> Any:
    """Deserialize JSON text read from the store. ``None`` stays ``None``."""
    if data is None:
        return None

    try:
        if isinstance(data, (bytes, bytearray)):
            data = data.decode("utf-8")
        return json.loads(data)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise SerializationError(
            f"Stored value is not valid JSON: {exc}",
            details={"length": len(data)},
        ) from exc
