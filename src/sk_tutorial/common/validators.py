from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation

from ..core.exceptions import ValidationError

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def require_non_empty(value, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_min_length(value: str, field_name: str, min_len: int) -> str:
    if value is None or len(value) < min_len:
        raise ValidationError(f"{field_name} must be at least {min_len} characters long")
    return value


def require_amount(value, field_name: str = "amount") -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid {field_name}")
    if not amount.is_finite() or amount < 0:
        raise ValidationError(f"Invalid {field_name}")
    return amount


def is_email(value: str) -> bool:
    return bool(EMAIL_RE.match(value or ""))


def normalize_contact(value) -> str:
    """Digits only, last 10 (drops country code, spaces and symbols)."""
    digits = re.sub(r"\D", "", str(value or ""))
    return digits[-10:]
