"""Pure aggregation over day-entries. No storage access here."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Sequence

from ..attendance.model import DayEntry
from ..core.enums import AttendanceStatus
from ..students.model import grade_rank


def pct(part: int, whole: int, places: int = 1) -> float:
    """part/whole as a percentage, rounded half-up."""
    if not whole:
        return 0.0
    value = Decimal(part) * 100 / Decimal(whole)
    quantum = Decimal(1).scaleb(-places)
    return float(value.quantize(quantum, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class StudentTally:
    student_id: str
    student_name: str
    grade: str
    present: int
    absent: int
    late: int

    @property
    def total_days(self) -> int:
        return self.present + self.absent + self.late

    @property
    def attendance_rate(self) -> float:
        return pct(self.present, self.total_days)

    def to_dict(self) -> dict:
        return {
            "studentId": self.student_id,
            "studentName": self.student_name,
            "grade": self.grade,
            "totalDays": self.total_days,
            "present": self.present,
            "absent": self.absent,
            "late": self.late,
            "attendanceRate": self.attendance_rate,
        }


def tally(student_id: str, student_name: str, grade: str, entries: Iterable[DayEntry]) -> StudentTally:
    # leave days (legacy records) are neither marked days nor absences
    counts = {s: 0 for s in AttendanceStatus}
    for e in entries:
        counts[e.status] += 1
    return StudentTally(
        student_id=student_id,
        student_name=student_name,
        grade=grade,
        present=counts[AttendanceStatus.PRESENT],
        absent=counts[AttendanceStatus.ABSENT],
        late=counts[AttendanceStatus.LATE],
    )


def grade_stats(tallies: Sequence[StudentTally]) -> list[dict]:
    """Per-grade percentages, ordered Nursery first."""
    groups: dict[str, list[StudentTally]] = {}
    for t in tallies:
        groups.setdefault(t.grade, []).append(t)

    out = []
    for grade in sorted(groups, key=lambda g: (grade_rank(g), g)):
        rows = groups[grade]
        possible = sum(r.total_days for r in rows)
        present = sum(r.present for r in rows)
        out.append(
            {
                "grade": grade,
                "present": pct(present, possible),
                "absent": pct(sum(r.absent for r in rows), possible),
                "late": pct(sum(r.late for r in rows), possible),
                "totalStudents": len(rows),
                "attendanceRate": pct(present, possible),
            }
        )
    return out


def _pick(stats: Sequence[dict], key: str, *, highest: bool) -> dict:
    # stats are in grade order; strict comparison keeps the earliest grade on ties
    best = stats[0]
    for row in stats[1:]:
        if (row[key] > best[key]) if highest else (row[key] < best[key]):
            best = row
    return best


def insights(stats: Sequence[dict]) -> dict:
    if not stats:
        return {
            "highestAttendance": {"grade": "N/A", "rate": 0},
            "lowestAttendance": {"grade": "N/A", "rate": 0},
            "mostAbsent": {"grade": "N/A", "count": 0},
            "mostLate": {"grade": "N/A", "count": 0},
        }

    high = _pick(stats, "attendanceRate", highest=True)
    low = _pick(stats, "attendanceRate", highest=False)
    absent = _pick(stats, "absent", highest=True)
    late = _pick(stats, "late", highest=True)
    return {
        "highestAttendance": {"grade": high["grade"], "rate": high["attendanceRate"]},
        "lowestAttendance": {"grade": low["grade"], "rate": low["attendanceRate"]},
        "mostAbsent": {"grade": absent["grade"], "count": absent["absent"]},
        "mostLate": {"grade": late["grade"], "count": late["late"]},
    }
