from __future__ import annotations

from typing import Any

from .errors import ValidationError
from .money import to_cents

MAX_NOTE_LENGTH = 500


def require_json_object(payload: Any) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def normalize_note(value: Any, field: str = "note") -> str | None:
    """Strip a free-text note; blank becomes None."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    s = value.strip()
    if not s:
        return None
    if len(s) > MAX_NOTE_LENGTH:
        raise ValidationError(f"{field} exceeds max length {MAX_NOTE_LENGTH}")
    return s


def normalize_optional_str(value: Any, field: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    return value.strip() or None


def require_cents(value: Any, field: str = "amount_cents") -> int:
    """Service-level guard: amounts arrive as int cents, never floats."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer number of cents")
    return value


def parse_amount(payload: dict, field: str = "amount") -> int:
    """Read a decimal currency field from a request body as cents."""
    if field not in payload or payload[field] is None:
        raise ValidationError(f"{field} is required")
    return to_cents(payload[field], field)


def parse_limit(raw: str | None, *, default: int, maximum: int) -> int:
    """Query-string limit; garbage or non-positive values fall back to default."""
    if raw is None or raw == "":
        return default
    try:
        limit = int(raw)
    except (TypeError, ValueError):
        return default
    if limit <= 0:
        return default
    return min(limit, maximum)
