from __future__ import annotations

import re
from datetime import date, datetime
from typing import Mapping, Optional, Sequence

from pymongo import ASCENDING, DESCENDING, UpdateOne

from ..common.datetime_utils import MonthKey, as_datetime
from ..core.constants import STUDENTS
from ..database.connection import DatabaseConnection
from ..database.mongo_base import as_date, from_decimal, storage_errors, to_decimal128, try_object_id
from .model import FeeEntry, Student, parse_payment_mode
from .repository import StudentRepository

ACTIVE = {"isActive": {"$ne": False}}


def fee_entry_to_doc(entry: FeeEntry) -> dict:
    return {
        "year": entry.period.year,
        "month": entry.period.month,
        "paid": entry.paid,
        "dueDate": as_datetime(entry.due_date) if entry.due_date else None,
        "paidOn": as_datetime(entry.paid_on) if entry.paid_on else None,
        "paymentMode": entry.payment_mode.value if entry.payment_mode else None,
        "amount": to_decimal128(entry.amount),
        "recordedBy": entry.recorded_by,
        "recordedAt": entry.recorded_at,
    }


def fee_entry_from_doc(doc: dict) -> FeeEntry:
    month = doc.get("month")
    if isinstance(month, str):
        # rows written before periods were split into year/month
        period = MonthKey.from_label(month)
    else:
        period = MonthKey(int(doc["year"]), int(month))
    return FeeEntry(
        period=period,
        paid=bool(doc.get("paid", False)),
        due_date=as_date(doc.get("dueDate")),
        paid_on=as_date(doc.get("paidOn")),
        payment_mode=parse_payment_mode(doc.get("paymentMode")),
        amount=from_decimal(doc.get("amount")),
        recorded_by=doc.get("recordedBy") or doc.get("createdBy"),
        recorded_at=doc.get("recordedAt") or doc.get("createdAt"),
    )


def student_from_doc(doc: dict) -> Student:
    return Student(
        student_id=str(doc["_id"]),
        name=doc.get("name", ""),
        grade=doc.get("grade", ""),
        parent_name=doc.get("parentName", ""),
        contact=doc.get("contact", ""),
        admission_date=as_date(doc["admissionDate"]),
        is_active=doc.get("isActive", True) is not False,
        monthly_fee_status=tuple(fee_entry_from_doc(e) for e in doc.get("monthlyFeeStatus") or []),
        last_fee_paid_date=as_date(doc.get("lastFeePaidDate")),
        fee_date_is_defaulted=bool(doc.get("feeDateIsDefaulted", False)),
        created_at=doc.get("createdAt"),
        updated_at=doc.get("updatedAt"),
    )


def _details(student: Student) -> dict:
    return {
        "name": student.name,
        "grade": student.grade,
        "parentName": student.parent_name,
        "contact": student.contact,
        "admissionDate": as_datetime(student.admission_date),
        "lastFeePaidDate": as_datetime(student.last_fee_paid_date) if student.last_fee_paid_date else None,
        "monthlyFeeStatus": [fee_entry_to_doc(e) for e in student.monthly_fee_status],
        "feeDateIsDefaulted": student.fee_date_is_defaulted,
    }


class MongoStudentRepository(StudentRepository):
    def __init__(self, conn: DatabaseConnection):
        self._conn = conn

    @property
    def _students(self):
        return self._conn.collection(STUDENTS)

    def search(self, *, search=None, grade=None, skip=0, limit=50):
        query: dict = dict(ACTIVE)
        if search:
            pattern = {"$regex": re.escape(search), "$options": "i"}
            query["$or"] = [{"name": pattern}, {"parentName": pattern}, {"contact": pattern}]
        if grade:
            query["grade"] = grade

        with storage_errors("list students"):
            cursor = (
                self._students.find(query)
                .sort([("createdAt", DESCENDING), ("name", ASCENDING)])
                .skip(int(skip))
                .limit(int(limit))
            )
            rows = [student_from_doc(d) for d in cursor]
            total = self._students.count_documents(query)
        return rows, total

    def list_active(self) -> Sequence[Student]:
        with storage_errors("list students"):
            return [student_from_doc(d) for d in self._students.find(ACTIVE)]

    def get_active(self, student_id: str) -> Optional[Student]:
        oid = try_object_id(student_id)
        if oid is None:
            return None
        with storage_errors("load student"):
            doc = self._students.find_one({"_id": oid, **ACTIVE})
        return student_from_doc(doc) if doc else None

    def get_active_many(self, student_ids: Sequence[str]) -> Mapping[str, Student]:
        oids = [oid for oid in (try_object_id(s) for s in student_ids) if oid is not None]
        if not oids:
            return {}
        with storage_errors("load students"):
            docs = self._students.find({"_id": {"$in": oids}, **ACTIVE})
            return {str(d["_id"]): student_from_doc(d) for d in docs}

    def find_active_duplicate(self, *, name: str, grade: str, exclude_id: Optional[str] = None) -> Optional[Student]:
        query: dict = {"name": name, "grade": grade, **ACTIVE}
        oid = try_object_id(exclude_id) if exclude_id else None
        if oid is not None:
            query["_id"] = {"$ne": oid}
        with storage_errors("check duplicate student"):
            doc = self._students.find_one(query)
        return student_from_doc(doc) if doc else None

    def insert(self, student: Student, *, created_by: str) -> str:
        now = datetime.utcnow()
        doc = {
            **_details(student),
            "isActive": True,
            "createdAt": now,
            "updatedAt": now,
            "createdBy": created_by,
        }
        with storage_errors("create student"):
            return str(self._students.insert_one(doc).inserted_id)

    def save(self, student: Student, *, updated_by: str) -> bool:
        oid = try_object_id(student.student_id)
        if oid is None:
            return False
        update = {**_details(student), "updatedAt": datetime.utcnow(), "updatedBy": updated_by}
        with storage_errors("update student"):
            result = self._students.update_one({"_id": oid, **ACTIVE}, {"$set": update})
        return result.matched_count > 0

    def soft_delete(self, student_id: str, *, deleted_by: str) -> bool:
        oid = try_object_id(student_id)
        if oid is None:
            return False
        with storage_errors("delete student"):
            result = self._students.update_one(
                {"_id": oid, **ACTIVE},
                {"$set": {"isActive": False, "deletedAt": datetime.utcnow(), "deletedBy": deleted_by}},
            )
        return result.modified_count > 0

    def set_fee_status(self, student_id: str, *, entries, last_fee_paid_date: Optional[date], updated_by: str) -> bool:
        oid = try_object_id(student_id)
        if oid is None:
            return False
        update = {
            "monthlyFeeStatus": [fee_entry_to_doc(e) for e in entries],
            "lastFeePaidDate": as_datetime(last_fee_paid_date) if last_fee_paid_date else None,
            "feeDateIsDefaulted": False,
            "updatedAt": datetime.utcnow(),
            "updatedBy": updated_by,
        }
        with storage_errors("update fee status"):
            result = self._students.update_one({"_id": oid, **ACTIVE}, {"$set": update})
        return result.matched_count > 0

    def append_fee_entries(self, entries: Mapping[str, FeeEntry]) -> int:
        now = datetime.utcnow()
        ops = []
        for student_id, entry in entries.items():
            oid = try_object_id(student_id)
            if oid is None:
                continue
            # no-op when the month is already on the ledger, so overlapping runs push once
            without_period = {
                "$not": {"$elemMatch": {"year": entry.period.year, "month": entry.period.month}}
            }
            ops.append(
                UpdateOne(
                    {"_id": oid, **ACTIVE, "monthlyFeeStatus": without_period},
                    {"$push": {"monthlyFeeStatus": fee_entry_to_doc(entry)}, "$set": {"updatedAt": now}},
                )
            )
        if not ops:
            return 0
        with storage_errors("append due entries"):
            result = self._students.bulk_write(ops, ordered=False)
        return result.modified_count
