"""
JSON shaping utilities.

Audit details and change-request snapshots are stored in JSON columns, so
Decimal, datetime and UUID values are turned into strings before they reach
the database.  Money keeps its two places (``"100.00"``), never ``1E+2``.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


def _json_serializer(obj: Any) -> Any:
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (set, frozenset)):
        return sorted(str(item) for item in obj)

    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def canonicalize_json(data: Any) -> str:
    """Deterministic JSON string: sorted keys, no whitespace."""
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        default=_json_serializer,
    )


def to_json_safe(data: Any) -> Any:
    """
    Return ``data`` with every value converted to a JSON-native type.

    Enum members are checked before ``str``/``int`` so that ``str`` enums
    come out as their value.
    """
    return json.loads(canonicalize_json(_unwrap_enums(data)))


def _unwrap_enums(data: Any) -> Any:
    if isinstance(data, Enum):
        return data.value
    if isinstance(data, dict):
        return {str(_unwrap_enums(k)): _unwrap_enums(v) for k, v in data.items()}
    if isinstance(data, (list, tuple)):
        return [_unwrap_enums(item) for item in data]
    return data
