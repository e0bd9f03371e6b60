from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from ..common.datetime_utils import MonthKey, parse_date_input
from ..common.validators import require_amount
from ..core.constants import GRADES
from ..core.enums import PaymentMode
from ..core.exceptions import ValidationError


def parse_payment_mode(value: Any) -> Optional[PaymentMode]:
    if value is None or value == "":
        return None
    for mode in PaymentMode:
        if str(value).strip().lower() == mode.value.lower():
            return mode
    raise ValidationError(f"Invalid payment mode: {value}")


def grade_rank(grade: str) -> int:
    """Position in the grade enumeration; unknown grades sort last."""
    return GRADES.index(grade) if grade in GRADES else len(GRADES)


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class FeeEntry:
    """One month's payment record for a student."""

    period: MonthKey
    paid: bool
    due_date: Optional[date] = None
    paid_on: Optional[date] = None
    payment_mode: Optional[PaymentMode] = None
    amount: Optional[Decimal] = None
    recorded_by: Optional[str] = None
    recorded_at: Optional[datetime] = None

    def identity(self) -> tuple:
        """Equality key used by newly-paid detection."""
        return (self.period, self.paid, self.amount, self.payment_mode)

    def to_dict(self) -> dict:
        return {
            "month": self.period.label,
            "year": self.period.year,
            "monthNumber": self.period.month,
            "paid": self.paid,
            "dueDate": _iso(self.due_date),
            "paidOn": _iso(self.paid_on),
            "paymentMode": self.payment_mode.value if self.payment_mode else None,
            "amount": float(self.amount) if self.amount is not None else None,
        }

    @classmethod
    def from_input(cls, data: Any) -> "FeeEntry":
        if not isinstance(data, dict):
            raise ValidationError("Each fee entry must be an object")
        if not data.get("month"):
            raise ValidationError("Fee entry month is required")
        amount = data.get("amount")
        return cls(
            period=MonthKey.from_label(str(data["month"])),
            paid=bool(data.get("paid", False)),
            due_date=parse_date_input(data["dueDate"], "due date") if data.get("dueDate") else None,
            paid_on=parse_date_input(data["paidOn"], "paid on") if data.get("paidOn") else None,
            payment_mode=parse_payment_mode(data.get("paymentMode")),
            amount=require_amount(amount) if amount not in (None, "") else None,
        )


@dataclass(frozen=True)
class Student:
    """Domain entity: enrolled student with the embedded fee ledger."""

    student_id: str
    name: str
    grade: str
    parent_name: str
    contact: str
    admission_date: date
    is_active: bool = True
    monthly_fee_status: tuple[FeeEntry, ...] = field(default_factory=tuple)
    last_fee_paid_date: Optional[date] = None
    fee_date_is_defaulted: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def fee_entry(self, period: MonthKey) -> Optional[FeeEntry]:
        for entry in self.monthly_fee_status:
            if entry.period == period:
                return entry
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.student_id,
            "name": self.name,
            "grade": self.grade,
            "parentName": self.parent_name,
            "contact": self.contact,
            "admissionDate": self.admission_date.isoformat(),
            "lastFeePaidDate": _iso(self.last_fee_paid_date),
            "monthlyFeeStatus": [e.to_dict() for e in self.monthly_fee_status],
            "isActive": self.is_active,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass(frozen=True)
class StudentInput:
    """Validated create/update payload."""

    name: str
    grade: str
    parent_name: str
    contact: str
    admission_date: date
