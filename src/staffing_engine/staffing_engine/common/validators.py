from __future__ import annotations

from typing import Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: object, field_name: str, *, error: type[ValidationError] = ValidationError) -> str:
    # JSON bodies can carry numbers or lists here; anything but text counts as missing
    if not isinstance(value, str) or not value.strip():
        raise error(f"{field_name} is required")
    return value.strip()


def require_non_negative_int(value: object, field_name: str) -> int:
    # bool is an int subclass; a checkbox value is never a head count
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"{field_name} must be a non-negative integer")
    return value


def optional_text(value: object, field_name: str = "Value") -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be text")
    return value.strip() or None
