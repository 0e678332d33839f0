from __future__ import annotations

import math
from typing import Any

from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required", field=field_name)
    return value.strip()


def require_finite(value: Any, field_name: str) -> float:
    """Coerce to float, rejecting booleans, NaN and infinities."""
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number", field=field_name)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number", field=field_name)
    if not math.isfinite(number):
        raise ValidationError(f"{field_name} must be a finite number", field=field_name)
    return number


def require_month(month: Any, year: Any) -> tuple[int, int]:
    try:
        m, y = int(month), int(year)
    except (TypeError, ValueError):
        raise ValidationError("Month and year are required")
    if not 1 <= m <= 12:
        raise ValidationError("Month must be between 1 and 12", month=m)
    if not 1970 <= y <= 9999:
        raise ValidationError("Year is out of range", year=y)
    return m, y


def require_int(value: Any, field_name: str) -> int:
    """Accept ints, integral floats and digit strings; reject booleans."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if value is None or isinstance(value, (bool, float)):
        raise ValidationError(f"{field_name} must be an integer", field=field_name)
    try:
        return int(str(value).strip())
    except ValueError:
        raise ValidationError(f"{field_name} must be an integer", field=field_name)
