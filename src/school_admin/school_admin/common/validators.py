from __future__ import annotations

from typing import Any

from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_min_length(value: str, field_name: str, min_len: int) -> str:
    if value is None or len(value) < min_len:
        raise ValidationError(f"{field_name} must be at least {min_len} characters")
    return value


def require_positive_int(value: Any, field_name: str) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a whole number")
    if n < 1:
        raise ValidationError(f"{field_name} must be at least 1")
    return n


def require_ids(values: Any, field_name: str) -> list[int]:
    """Parse a selection of ids, keeping first-seen order and dropping repeats."""

    out: list[int] = []
    for v in values or []:
        try:
            n = int(v)
        except (TypeError, ValueError):
            raise ValidationError(f"{field_name} contains an invalid id")
        if n not in out:
            out.append(n)
    return out
