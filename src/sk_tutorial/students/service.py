from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, replace
from datetime import date
from typing import Optional, Sequence

from ..common.datetime_utils import MonthKey, now_local, parse_date_input
from ..common.validators import require_min_length
from ..core.constants import DEFAULT_PAGE_SIZE, GRADES
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..database.mongo_base import to_object_id
from .model import FeeEntry, Student, StudentInput
from .repository import StudentRepository

logger = logging.getLogger(__name__)

# Indian mobile number: +91 then 10 digits starting 6-9
CONTACT_RE = re.compile(r"^\+91\s?[6-9]\d{9}$")


def validate_student_input(data: dict, *, today: date) -> StudentInput:
    fields = ("name", "grade", "parentName", "contact", "admissionDate")
    if not all(data.get(k) for k in fields):
        raise ValidationError("All fields are required: name, grade, parentName, contact, admissionDate")

    name = require_min_length(str(data["name"]).strip(), "Student name", 2)
    parent_name = require_min_length(str(data["parentName"]).strip(), "Parent name", 2)

    contact = str(data["contact"]).strip()
    if not CONTACT_RE.match(re.sub(r"\s", "", contact)):
        raise ValidationError("Invalid contact number format. Use +91 followed by 10 digits")

    grade = str(data["grade"]).strip()
    if grade not in GRADES:
        raise ValidationError("Invalid grade selected")

    admission_date = parse_date_input(data["admissionDate"], "admission date")
    if admission_date > today:
        raise ValidationError("Admission date cannot be in the future")

    return StudentInput(
        name=name,
        grade=grade,
        parent_name=parent_name,
        contact=contact,
        admission_date=admission_date,
    )


@dataclass(frozen=True)
class StudentPage:
    students: Sequence[Student]
    total: int
    page: int
    limit: int

    @property
    def pagination(self) -> dict:
        skip = (self.page - 1) * self.limit
        return {
            "currentPage": self.page,
            "totalPages": math.ceil(self.total / self.limit) if self.limit else 0,
            "totalCount": self.total,
            "hasNextPage": skip + len(self.students) < self.total,
            "hasPrevPage": self.page > 1,
        }


class StudentService:
    """Use case: the student directory (admission, edit, soft delete)."""

    def __init__(self, students: StudentRepository):
        self._students = students

    def list_students(
        self,
        *,
        search: Optional[str] = None,
        grade: Optional[str] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> StudentPage:
        page = max(int(page or 1), 1)
        limit = max(int(limit or DEFAULT_PAGE_SIZE), 1)
        if grade == "All":
            grade = None

        rows, total = self._students.search(
            search=(search or "").strip() or None,
            grade=grade or None,
            skip=(page - 1) * limit,
            limit=limit,
        )
        return StudentPage(students=rows, total=total, page=page, limit=limit)

    def create_student(self, data: dict, *, created_by: str, today: Optional[date] = None) -> Student:
        today = today or now_local().date()
        valid = validate_student_input(data, today=today)

        if self._students.find_active_duplicate(name=valid.name, grade=valid.grade):
            raise ConflictError("A student with this name already exists in the same grade")

        # admission month counts as paid on the admission date
        first_entry = FeeEntry(
            period=MonthKey.of(valid.admission_date),
            paid=True,
            paid_on=valid.admission_date,
            recorded_by=created_by,
        )
        student = Student(
            student_id="",
            name=valid.name,
            grade=valid.grade,
            parent_name=valid.parent_name,
            contact=valid.contact,
            admission_date=valid.admission_date,
            monthly_fee_status=(first_entry,),
            last_fee_paid_date=valid.admission_date,
            fee_date_is_defaulted=True,
        )
        student_id = self._students.insert(student, created_by=created_by)
        logger.info("student created id=%s grade=%s", student_id, student.grade)

        created = self._students.get_active(student_id)
        return created or replace(student, student_id=student_id)

    def update_student(self, student_id: str, data: dict, *, updated_by: str, today: Optional[date] = None) -> Student:
        if not student_id:
            raise ValidationError("Student ID is required")
        to_object_id(student_id, "student ID")

        today = today or now_local().date()
        valid = validate_student_input(data, today=today)

        existing = self._students.get_active(student_id)
        if not existing:
            raise NotFoundError("Student not found")

        if self._students.find_active_duplicate(name=valid.name, grade=valid.grade, exclude_id=student_id):
            raise ConflictError("Another student with this name already exists in the same grade")

        updated = replace(
            existing,
            name=valid.name,
            grade=valid.grade,
            parent_name=valid.parent_name,
            contact=valid.contact,
            admission_date=valid.admission_date,
        )
        if valid.admission_date != existing.admission_date and existing.fee_date_is_defaulted:
            updated = self._move_default_fee_dates(updated, valid.admission_date)

        if not self._students.save(updated, updated_by=updated_by):
            raise NotFoundError("Student not found")

        return self._students.get_active(student_id) or updated

    @staticmethod
    def _move_default_fee_dates(student: Student, admission_date: date) -> Student:
        entries = list(student.monthly_fee_status)
        if entries:
            entries[0] = replace(entries[0], period=MonthKey.of(admission_date), paid_on=admission_date)
        return replace(student, last_fee_paid_date=admission_date, monthly_fee_status=tuple(entries))

    def delete_student(self, student_id: str, *, deleted_by: str) -> None:
        if not student_id:
            raise ValidationError("Student ID is required")
        to_object_id(student_id, "student ID")

        if not self._students.get_active(student_id):
            raise NotFoundError("Student not found")
        if not self._students.soft_delete(student_id, deleted_by=deleted_by):
            raise NotFoundError("Student not found")
        logger.info("student soft-deleted id=%s by=%s", student_id, deleted_by)
