from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterable, Mapping, Optional, Sequence

from ..common.datetime_utils import MonthKey, now_local, parse_iso_date
from ..core.enums import MARKABLE_STATUSES, AttendanceStatus, Role
from ..core.exceptions import AuthorizationError, ValidationError
from ..students.model import Student, grade_rank
from ..students.repository import StudentRepository
from .model import DayEntry, MarkResult, MonthWrite, YearRecord
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

STATUS_VALUES = tuple(s.value for s in MARKABLE_STATUSES)


def upsert_day(entries: Sequence[DayEntry], entry: DayEntry) -> tuple[DayEntry, ...]:
    """Replace the entry for the same date in place, or append. Order is kept as stored."""
    out = list(entries)
    for i, existing in enumerate(out):
        if existing.date == entry.date:
            out[i] = entry
            return tuple(out)
    out.append(entry)
    return tuple(out)


class AttendanceService:
    """Use case: fold a day's marks into per-student year-records."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        students: StudentRepository,
        *,
        mark_roles: Iterable[str] = (Role.ADMIN.value, Role.TEACHER.value),
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._students = students
        self._mark_roles = frozenset(str(r) for r in mark_roles)
        self._clock = clock

    def can_mark(self, role: Role | str) -> bool:
        value = role.value if isinstance(role, Role) else str(role)
        return value in self._mark_roles

    def list_students_for_marking(self) -> list[Student]:
        rows = self._students.list_active()
        return sorted(rows, key=lambda s: (grade_rank(s.grade), s.name))

    def _validate(self, date_value, entries) -> tuple[str, dict[str, AttendanceStatus]]:
        if not date_value or not isinstance(entries, Mapping) or not entries:
            raise ValidationError("Date and attendance data are required")
        try:
            day = parse_iso_date(str(date_value))
        except ValueError:
            raise ValidationError(f"Invalid date: {date_value} (expected YYYY-MM-DD)")

        # one bad status rejects the whole batch before any read
        statuses: dict[str, AttendanceStatus] = {}
        for student_id, status in entries.items():
            if status not in STATUS_VALUES:
                raise ValidationError(f"Invalid attendance status: {status}")
            statuses[str(student_id)] = AttendanceStatus(status)
        return day.isoformat(), statuses

    def mark_attendance(self, date_value, entries: Mapping[str, str], *, marked_by: str, role: Role | str) -> MarkResult:
        if not self.can_mark(role):
            raise AuthorizationError("Access denied. Insufficient permissions.")

        day, statuses = self._validate(date_value, entries)
        period = MonthKey.of(parse_iso_date(day))
        month_name = period.name

        students = self._students.get_active_many(list(statuses))
        skipped = [sid for sid in statuses if sid not in students]
        if skipped:
            logger.warning("mark attendance %s: skipped %d unknown or inactive students: %s", day, len(skipped), skipped)

        existing = self._attendance.get_many([(sid, period.year) for sid in students])

        marked_at = self._clock()
        updates: list[MonthWrite] = []
        inserts: list[YearRecord] = []
        for student_id, student in students.items():
            entry = DayEntry(date=day, status=statuses[student_id], marked_by=marked_by, marked_at=marked_at)
            record = existing.get((student_id, period.year))
            if record is not None:
                updates.append(
                    MonthWrite(
                        student_id=student_id,
                        year=period.year,
                        month_name=month_name,
                        entries=upsert_day(record.month(month_name), entry),
                        student_name=student.name,
                        student_grade=student.grade,
                    )
                )
            else:
                inserts.append(
                    YearRecord(
                        student_id=student_id,
                        year=period.year,
                        student_name=student.name,
                        student_grade=student.grade,
                        months={month_name: (entry,)},
                    )
                )

        updated, created = self._attendance.bulk_apply(updates=updates, inserts=inserts, actor=marked_by)
        logger.info(
            "attendance marked date=%s processed=%d updated=%d created=%d by=%s",
            day, len(students), updated, created, marked_by,
        )
        return MarkResult(
            date=day,
            month=month_name,
            year=period.year,
            processed=len(students),
            created=created,
            updated=updated,
        )
