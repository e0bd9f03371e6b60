from __future__ import annotations

import logging
from datetime import datetime
from typing import Mapping, Optional, Sequence

from pymongo import ASCENDING, UpdateOne

from ..core.constants import ATTENDANCE, MONTH_NAMES
from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mongo_base import storage_errors, try_object_id
from .model import DayEntry, MonthWrite, YearRecord
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


def _entry_to_doc(entry: DayEntry) -> dict:
    return {
        "date": entry.date,
        "status": entry.status.value,
        "markedBy": entry.marked_by,
        "markedAt": entry.marked_at,
    }


def _entry_from_doc(doc: dict) -> Optional[DayEntry]:
    try:
        status = AttendanceStatus(doc.get("status"))
    except ValueError:
        return None
    return DayEntry(
        date=str(doc.get("date", ""))[:10],
        status=status,
        marked_by=doc.get("markedBy"),
        marked_at=doc.get("markedAt"),
    )


def _month_from_docs(record_id, month_name: str, docs) -> tuple[DayEntry, ...]:
    entries = []
    for d in docs or []:
        entry = _entry_from_doc(d)
        if entry is None:
            logger.warning(
                "attendance record %s %s: skipping entry %s with unknown status %r",
                record_id, month_name, d.get("date"), d.get("status"),
            )
            continue
        entries.append(entry)
    return tuple(entries)


def _record_from_doc(doc: dict) -> YearRecord:
    months = {
        name: _month_from_docs(doc["_id"], name, entries)
        for name, entries in (doc.get("months") or {}).items()
    }
    return YearRecord(
        record_id=str(doc["_id"]),
        student_id=str(doc["studentId"]),
        year=int(doc["year"]),
        student_name=doc.get("studentName", ""),
        student_grade=doc.get("studentGrade", ""),
        months=months,
        created_at=doc.get("createdAt"),
        updated_at=doc.get("updatedAt"),
    )


class MongoAttendanceRepository(AttendanceRepository):
    def __init__(self, conn: DatabaseConnection):
        self._conn = conn

    @property
    def _records(self):
        return self._conn.collection(ATTENDANCE)

    def get_many(self, keys):
        wanted = {}
        for student_id, year in keys:
            oid = try_object_id(student_id)
            if oid is not None:
                wanted[(str(oid), int(year))] = oid
        if not wanted:
            return {}

        query = {
            "studentId": {"$in": list(set(wanted.values()))},
            "year": {"$in": sorted({year for _, year in wanted})},
        }
        with storage_errors("load attendance records"):
            docs = list(self._records.find(query))

        found: dict[tuple[str, int], YearRecord] = {}
        for doc in docs:
            record = _record_from_doc(doc)
            key = (record.student_id, record.year)
            if key in wanted:
                found[key] = record
        return found

    def bulk_apply(self, *, updates: Sequence[MonthWrite], inserts: Sequence[YearRecord], actor: str) -> tuple[int, int]:
        now = datetime.utcnow()

        ops = []
        for w in updates:
            # only the target month is replaced so other months written concurrently survive
            ops.append(
                UpdateOne(
                    {"studentId": try_object_id(w.student_id), "year": w.year},
                    {
                        "$set": {
                            f"months.{w.month_name}": [_entry_to_doc(e) for e in w.entries],
                            "studentName": w.student_name,
                            "studentGrade": w.student_grade,
                            "updatedAt": now,
                            "updatedBy": actor,
                        }
                    },
                )
            )
        for r in inserts:
            # upsert: a concurrent first mark of the year merges into the same record
            month_fields = {
                f"months.{name}": [_entry_to_doc(e) for e in entries] for name, entries in r.months.items()
            }
            ops.append(
                UpdateOne(
                    {"studentId": try_object_id(r.student_id), "year": r.year},
                    {
                        "$set": {
                            **month_fields,
                            "studentName": r.student_name,
                            "studentGrade": r.student_grade,
                            "updatedAt": now,
                            "updatedBy": actor,
                        },
                        "$setOnInsert": {"createdAt": now, "createdBy": actor},
                    },
                    upsert=True,
                )
            )
        if not ops:
            return 0, 0

        with storage_errors("write attendance records"):
            result = self._records.bulk_write(ops, ordered=False)
        return result.matched_count, result.upserted_count

    def list_for_month(self, *, year: int, month_name: str, grade: Optional[str] = None, student_id: Optional[str] = None):
        query: dict = {"year": int(year), f"months.{month_name}": {"$exists": True}}
        if grade:
            query["studentGrade"] = grade
        if student_id:
            query["studentId"] = try_object_id(student_id)

        with storage_errors("load monthly attendance"):
            cursor = self._records.find(query).sort([("studentGrade", ASCENDING), ("studentName", ASCENDING)])
            return [_record_from_doc(d) for d in cursor]

    def months_with_data(self, year: int) -> Sequence[str]:
        pipeline = [
            {"$match": {"year": int(year)}},
            {"$project": {"monthsWithData": {"$objectToArray": "$months"}}},
            {"$unwind": "$monthsWithData"},
            {"$match": {"monthsWithData.v": {"$exists": True, "$ne": []}}},
            {"$group": {"_id": "$monthsWithData.k"}},
        ]
        with storage_errors("list available months"):
            names = {row["_id"] for row in self._records.aggregate(pipeline)}
        return [m for m in MONTH_NAMES if m in names]

    def distinct_years(self) -> Sequence[int]:
        with storage_errors("list available years"):
            years = self._records.distinct("year")
        return sorted((int(y) for y in years), reverse=True)
