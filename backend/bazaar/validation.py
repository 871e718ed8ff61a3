from __future__ import annotations

import enum
import uuid
from typing import Any

from .services.errors import ValidationError


# Maximum price: $9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

# Upper bound for a single cart line / stock adjustment
MAX_QUANTITY = 1_000_000


def as_uuid(value: Any, field: str = "id") -> uuid.UUID:
    """Coerce a UUID or its string form; anything else is a ValidationError."""
    if isinstance(value, uuid.UUID):
        return value
    if isinstance(value, str):
        try:
            return uuid.UUID(value.strip())
        except ValueError:
            pass
    raise ValidationError(f"{field} must be a UUID", {"field": field})


def as_int(value: Any, field: str = "quantity") -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        # Reject scientific notation and decimals
        if stripped.lstrip("-").isdigit():
            return int(stripped)
    raise ValidationError(f"{field} must be an integer", {"field": field})


def positive_int(value: Any, field: str = "quantity", *, maximum: int = MAX_QUANTITY) -> int:
    number = as_int(value, field)
    if number <= 0:
        raise ValidationError(f"{field} must be greater than zero", {"field": field})
    if number > maximum:
        raise ValidationError(f"{field} must be at most {maximum}", {"field": field})
    return number


def non_negative_int(value: Any, field: str = "quantity", *, maximum: int = MAX_QUANTITY) -> int:
    number = as_int(value, field)
    if number < 0:
        raise ValidationError(f"{field} cannot be negative", {"field": field})
    if number > maximum:
        raise ValidationError(f"{field} must be at most {maximum}", {"field": field})
    return number


def price_cents(value: Any, field: str = "price_cents") -> int:
    return positive_int(value, field, maximum=MAX_PRICE_CENTS)


def parse_enum(enum_cls: type[enum.Enum], value: Any, field: str):
    """Accept an enum member or its value (case-insensitive)."""
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls(value.strip().upper())
        except ValueError:
            pass
    allowed = ", ".join(member.value for member in enum_cls)
    raise ValidationError(f"{field} must be one of: {allowed}", {"field": field})


def required_text(value: Any, field: str, *, max_length: int = 255) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required", {"field": field})
    value = value.strip()
    if len(value) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters", {"field": field})
    return value
