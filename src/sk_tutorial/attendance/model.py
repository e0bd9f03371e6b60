from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Mapping, Optional

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class DayEntry:
    """One date's status inside a year-record month list."""

    date: str  # YYYY-MM-DD
    status: AttendanceStatus
    marked_by: Optional[str] = None
    marked_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "status": self.status.value,
            "markedBy": self.marked_by,
            "markedAt": self.marked_at,
        }


@dataclass(frozen=True)
class YearRecord:
    """All attendance of one student for one calendar year, keyed by month name."""

    student_id: str
    year: int
    student_name: str
    student_grade: str
    months: Mapping[str, tuple[DayEntry, ...]] = field(default_factory=dict)
    record_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def month(self, month_name: str) -> tuple[DayEntry, ...]:
        return tuple(self.months.get(month_name) or ())

    def to_dict(self) -> dict:
        return {
            "id": self.record_id,
            "studentId": self.student_id,
            "studentName": self.student_name,
            "studentGrade": self.student_grade,
            "year": self.year,
            "months": {name: [e.to_dict() for e in entries] for name, entries in self.months.items()},
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass(frozen=True)
class MonthWrite:
    """Replacement of a single month list on an existing year-record."""

    student_id: str
    year: int
    month_name: str
    entries: tuple[DayEntry, ...]
    student_name: str
    student_grade: str


@dataclass(frozen=True)
class MarkResult:
    date: str
    month: str
    year: int
    processed: int
    created: int
    updated: int

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "month": self.month,
            "year": self.year,
            "studentsProcessed": self.processed,
            "created": self.created,
            "updated": self.updated,
        }
