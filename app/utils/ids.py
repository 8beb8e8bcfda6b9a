# app/utils/ids.py
from __future__ import annotations
from typing import Optional
import uuid

from app.core.errors import InvalidInputError


def new_id() -> str:
    """Identifiers are minted here, before an entity ever reaches a store."""
    return str(uuid.uuid4())


def try_parse_id(value: Optional[str]) -> Optional[str]:
    """Canonical UUID string, or None when the value is missing/malformed."""
    if not value:
        return None
    try:
        return str(uuid.UUID(str(value).strip()))
    except ValueError:
        return None


def parse_id(value: Optional[str], field: str = "id") -> str:
    parsed = try_parse_id(value)
    if parsed is None:
        raise InvalidInputError(f"Invalid {field} format", details={"field": field, "value": value})
    return parsed
