from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles used for authorization."""

    ADMIN = "admin"
    TEACHER = "teacher"


class AttendanceStatus(str, Enum):
    """Day-entry status stored in attendance year-records."""

    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    # written by the earlier system; read back, never accepted on new marks
    LEAVE = "leave"


MARKABLE_STATUSES = (AttendanceStatus.PRESENT, AttendanceStatus.ABSENT, AttendanceStatus.LATE)


class PaymentMode(str, Enum):
    CASH = "Cash"
    ONLINE = "Online"
    UPI = "UPI"
    BANK_TRANSFER = "Bank Transfer"
    CHEQUE = "Cheque"
    OTHER = "Other"


class OutboxStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"
