"""Value serialization rules for audit change sets.

Every value stored in an audit change set goes through ``serialize_value``.
The rules are deterministic and never raise, so an odd value can only
degrade to a string and never fails the surrounding write.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

AUDIT_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def serialize_value(value: Any) -> Any:
    """Serialize one field value into a JSON-safe audit representation."""

    if value is None:
        return None
    if isinstance(value, Enum):
        return serialize_value(value.value)
    if isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, datetime):
        return value.strftime(AUDIT_DATETIME_FORMAT)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day).strftime(AUDIT_DATETIME_FORMAT)
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, Mapping):
        return {str(key): serialize_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_value(item) for item in value]
    if isinstance(value, (set, frozenset)):
        return sorted((serialize_value(item) for item in value), key=repr)
    return type(value).__name__


def serialize_reference(value: Any, *, entity_type: str) -> dict[str, Any] | None:
    """Serialize a foreign key as a small ``{id, type}`` reference."""

    if value is None:
        return None
    return {"id": serialize_value(value), "type": entity_type}
