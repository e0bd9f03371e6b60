from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Callable, Optional, Sequence

from ..common.datetime_utils import MonthKey, now_local, parse_date_input
from ..common.validators import require_amount
from ..core.constants import SYSTEM_CRON_USER
from ..core.exceptions import NotFoundError, ValidationError
from ..database.mongo_base import to_object_id
from ..notifications.service import FeeNotifier
from ..students.model import FeeEntry, Student, parse_payment_mode
from ..students.repository import StudentRepository

logger = logging.getLogger(__name__)


def upsert_period(entries: Sequence[FeeEntry], entry: FeeEntry) -> tuple[FeeEntry, ...]:
    out = list(entries)
    for i, existing in enumerate(out):
        if existing.period == entry.period:
            out[i] = entry
            return tuple(out)
    out.append(entry)
    return tuple(out)


def newly_paid(old: Sequence[FeeEntry], new: Sequence[FeeEntry]) -> list[FeeEntry]:
    """Paid entries in ``new`` with no identical (period, paid, amount, mode) entry in ``old``."""
    before = {e.identity() for e in old}
    return [e for e in new if e.paid and e.identity() not in before]


class FeeLedgerService:
    """Use case: the per-student monthly fee ledger."""

    def __init__(
        self,
        students: StudentRepository,
        notifier: FeeNotifier,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._students = students
        self._notifier = notifier
        self._clock = clock

    def _load(self, student_id: str) -> Student:
        to_object_id(student_id, "student ID")
        student = self._students.get_active(student_id)
        if not student:
            raise NotFoundError("Student not found")
        return student

    def list_with_fee_status(self) -> list[Student]:
        return list(self._students.list_active())

    def record_payment(
        self,
        student_id: str,
        month: str,
        payment_mode: str,
        amount,
        paid_on=None,
        *,
        recorded_by: str,
    ) -> FeeEntry:
        if not student_id or not month or not payment_mode or amount in (None, ""):
            raise ValidationError("Student ID, month, payment mode, and amount are required")

        period = MonthKey.from_label(str(month))
        mode = parse_payment_mode(payment_mode)
        value = require_amount(amount)
        student = self._load(student_id)

        now = self._clock()
        today = now.date()
        entry = FeeEntry(
            period=period,
            paid=True,
            # admission day projected into the current month
            due_date=MonthKey.of(today).clamp_day(student.admission_date.day),
            paid_on=parse_date_input(paid_on, "paid on") if paid_on else today,
            payment_mode=mode,
            amount=value,
            recorded_by=recorded_by,
            recorded_at=now,
        )
        entries = upsert_period(student.monthly_fee_status, entry)
        if not self._students.set_fee_status(
            student_id, entries=entries, last_fee_paid_date=today, updated_by=recorded_by
        ):
            raise NotFoundError("Student not found")

        logger.info("payment recorded student=%s period=%s mode=%s", student_id, period.label, mode.value)
        if newly_paid(student.monthly_fee_status, [entry]):
            self._notifier.fee_paid(replace(student, monthly_fee_status=entries), entry)
        return entry

    def update_fee_status(
        self,
        student_id: str,
        monthly_fee_status,
        last_fee_paid_date=None,
        *,
        updated_by: str,
    ) -> Student:
        if not student_id or monthly_fee_status is None:
            raise ValidationError("Student ID and monthly fee status are required")
        if not isinstance(monthly_fee_status, list):
            raise ValidationError("monthlyFeeStatus must be a list")

        entries = tuple(FeeEntry.from_input(item) for item in monthly_fee_status)
        seen = set()
        for e in entries:
            if e.period in seen:
                raise ValidationError(f"Duplicate fee entry for {e.period.label}")
            seen.add(e.period)

        student = self._load(student_id)
        last_paid = (
            parse_date_input(last_fee_paid_date, "last fee paid date")
            if last_fee_paid_date
            else self._clock().date()
        )
        if not self._students.set_fee_status(
            student_id, entries=entries, last_fee_paid_date=last_paid, updated_by=updated_by
        ):
            raise NotFoundError("Student not found")

        updated = self._students.get_active(student_id) or replace(
            student, monthly_fee_status=entries, last_fee_paid_date=last_paid, fee_date_is_defaulted=False
        )
        fresh = newly_paid(student.monthly_fee_status, entries)
        for entry in fresh:
            self._notifier.fee_paid(updated, entry)
        logger.info("fee ledger replaced student=%s entries=%d newly_paid=%d", student_id, len(entries), len(fresh))
        return updated

    def delete_payment(self, student_id: str, month: str, *, updated_by: str) -> None:
        if not student_id or not month:
            raise ValidationError("Student ID and month are required")

        period = MonthKey.from_label(str(month))
        student = self._load(student_id)
        remaining = tuple(e for e in student.monthly_fee_status if e.period != period)
        if len(remaining) == len(student.monthly_fee_status):
            raise NotFoundError("Payment record for specified month not found")

        if not self._students.set_fee_status(
            student_id,
            entries=remaining,
            last_fee_paid_date=student.last_fee_paid_date,
            updated_by=updated_by,
        ):
            raise NotFoundError("Student not found")
        logger.info("payment deleted student=%s period=%s", student_id, period.label)

    def generate_due_entries(self, today: Optional[date] = None) -> dict:
        """Append an unpaid entry for the current month to every eligible active student."""
        now = self._clock()
        today = today or now.date()
        period = MonthKey.of(today)

        students = self._students.list_active()
        pending: dict[str, FeeEntry] = {}
        for s in students:
            if s.fee_entry(period) is not None:
                continue
            if s.admission_date > period.first_day:
                continue
            pending[s.student_id] = FeeEntry(
                period=period,
                paid=False,
                due_date=period.clamp_day(s.admission_date.day),
                recorded_by=SYSTEM_CRON_USER,
                recorded_at=now,
            )

        updated = self._students.append_fee_entries(pending) if pending else 0
        logger.info(
            "due entries for %s: %d added, %d active students", period.label, updated, len(students)
        )
        return {
            "message": f"Monthly unpaid entry added for {updated} student(s) for {period.label}",
            "processedMonth": period.label,
            "studentsUpdated": updated,
            "totalActiveStudents": len(students),
        }
