from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import MonthKey, month_number, now_local
from ..core.constants import MIN_REPORT_YEAR
from ..core.exceptions import ValidationError
from ..database.mongo_base import to_object_id
from ..students.model import grade_rank
from . import rollup

logger = logging.getLogger(__name__)

CSV_FIELDS = ["studentId", "studentName", "grade", "totalDays", "present", "absent", "late", "attendanceRate"]


@dataclass(frozen=True)
class MonthlyReport:
    records: list
    tallies: list
    summary: dict
    meta: dict

    def to_dict(self) -> dict:
        return {
            "message": "Attendance data retrieved successfully",
            "data": [r.to_dict() for r in self.records],
            "summary": self.summary,
            "meta": self.meta,
        }


def _required_int(value, field_name: str) -> int:
    if value is None or value == "":
        raise ValidationError("Year and month are required parameters")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field_name}")


class AttendanceReportService:
    """Read-side rollups over attendance year-records. Recomputed on every call."""

    def __init__(self, attendance: AttendanceRepository, *, clock: Callable[[], datetime] = now_local):
        self._attendance = attendance
        self._clock = clock

    def grade_report(self, *, month: Optional[str] = None, year=None) -> dict:
        now = self._clock()
        month_name = month or MonthKey.of(now.date()).name
        month_number(month_name)
        try:
            report_year = int(year) if year not in (None, "") else now.year
        except (TypeError, ValueError):
            raise ValidationError("Invalid year")

        records = self._attendance.list_for_month(year=report_year, month_name=month_name)
        tallies = [
            rollup.tally(r.student_id, r.student_name, r.student_grade, r.month(month_name))
            for r in records
            if r.month(month_name)
        ]
        tallies.sort(key=lambda t: (grade_rank(t.grade), t.student_name))
        stats = rollup.grade_stats(tallies)

        return {
            "gradeStats": stats,
            "studentDetails": [t.to_dict() for t in tallies],
            "insights": rollup.insights(stats),
            "metadata": {
                "totalStudents": len(tallies),
                "totalGrades": len(stats),
                "reportMonth": month_name,
                "reportYear": report_year,
                "generatedAt": now.isoformat(),
            },
        }

    def monthly_report(self, *, year, month, grade: Optional[str] = None, student_id: Optional[str] = None) -> MonthlyReport:
        report_year = _required_int(year, "year")
        report_month = _required_int(month, "month")

        current_year = self._clock().year
        if report_year < MIN_REPORT_YEAR or report_year > current_year + 1:
            raise ValidationError(f"Invalid year. Must be between {MIN_REPORT_YEAR} and {current_year + 1}")
        if not 1 <= report_month <= 12:
            raise ValidationError("Invalid month. Must be between 1 and 12")
        if grade and grade.lower() == "all":
            grade = None
        if student_id:
            to_object_id(student_id, "student ID")

        month_name = MonthKey(report_year, report_month).name
        records = list(
            self._attendance.list_for_month(
                year=report_year,
                month_name=month_name,
                grade=grade or None,
                student_id=student_id or None,
            )
        )

        dates = sorted(e.date for r in records for e in r.month(month_name))
        tallies = [
            rollup.tally(r.student_id, r.student_name, r.student_grade, r.month(month_name))
            for r in records
            if r.month(month_name)
        ]
        present = sum(t.present for t in tallies)
        possible = sum(t.total_days for t in tallies)

        summary = {
            "totalStudents": len(records),
            "monthName": month_name,
            "year": report_year,
            "grades": sorted({r.student_grade for r in records}, key=lambda g: (grade_rank(g), g)),
            "dateRange": {"start": dates[0] if dates else None, "end": dates[-1] if dates else None},
            "overallAttendanceRate": int(rollup.pct(present, possible, places=0)),
            "studentsWithData": len(tallies),
        }
        meta = {
            "requestedYear": report_year,
            "requestedMonth": report_month,
            "requestedGrade": grade,
            "requestedStudentId": student_id,
            "recordCount": len(records),
        }
        logger.debug("monthly report %s %s records=%d", month_name, report_year, len(records))
        return MonthlyReport(records=records, tallies=tallies, summary=summary, meta=meta)

    def export_monthly_csv(self, **kwargs) -> str:
        report = self.monthly_report(**kwargs)
        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=CSV_FIELDS)
        writer.writeheader()
        for t in report.tallies:
            writer.writerow(t.to_dict())
        return out.getvalue()

    def available_months(self, year=None) -> dict:
        now = self._clock()
        try:
            report_year = int(year) if year not in (None, "") else now.year
        except (TypeError, ValueError):
            raise ValidationError("Invalid year")
        return {
            "availableMonths": list(self._attendance.months_with_data(report_year)),
            "availableYears": list(self._attendance.distinct_years()),
            "currentYear": report_year,
            "currentMonth": MonthKey.of(now.date()).name,
        }
