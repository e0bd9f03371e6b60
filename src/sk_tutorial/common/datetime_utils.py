from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime

from ..core.constants import MONTH_NAMES
from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_date_input(value, field_name: str) -> date:
    """Accept a date, a datetime or an ISO string (date or datetime prefix)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required")
    try:
        return parse_iso_date(value.strip()[:10])
    except ValueError:
        raise ValidationError(f"Invalid {field_name} format")


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def as_datetime(value: date) -> datetime:
    # BSON has no date type; store midnight datetimes
    return datetime(value.year, value.month, value.day)


@dataclass(frozen=True, order=True)
class MonthKey:
    """A calendar month identified by (year, month-number).

    The "March 2024" label only exists at the HTTP boundary.
    """

    year: int
    month: int

    def __post_init__(self):
        if not 1 <= int(self.month) <= 12:
            raise ValidationError("Invalid month. Must be between 1 and 12")

    @classmethod
    def of(cls, value: date) -> "MonthKey":
        return cls(value.year, value.month)

    @classmethod
    def from_label(cls, label: str) -> "MonthKey":
        parts = (label or "").split()
        if len(parts) != 2 or parts[0] not in MONTH_NAMES or not parts[1].isdigit():
            raise ValidationError(f"Invalid month label: {label!r} (expected e.g. 'March 2024')")
        return cls(int(parts[1]), MONTH_NAMES.index(parts[0]) + 1)

    @property
    def name(self) -> str:
        return MONTH_NAMES[self.month - 1]

    @property
    def label(self) -> str:
        return f"{self.name} {self.year}"

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def days(self) -> int:
        return calendar.monthrange(self.year, self.month)[1]

    def clamp_day(self, day: int) -> date:
        """Project a day-of-month into this month, clamped to its last day."""
        return date(self.year, self.month, min(int(day), self.days))


def month_number(name: str) -> int:
    if name not in MONTH_NAMES:
        raise ValidationError("Invalid month. Please provide a valid month name (e.g., January, February, etc.)")
    return MONTH_NAMES.index(name) + 1
