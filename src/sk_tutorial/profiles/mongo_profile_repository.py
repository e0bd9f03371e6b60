from __future__ import annotations

import re
from datetime import datetime
from typing import Optional

from pymongo import ASCENDING, DESCENDING

from ..common.validators import normalize_contact
from ..core.constants import PROFILES
from ..database.connection import DatabaseConnection
from ..database.mongo_base import storage_errors, try_object_id
from .model import StudentProfile
from .repository import ProfileRepository


def _from_doc(doc: dict) -> StudentProfile:
    return StudentProfile(
        profile_id=str(doc["_id"]),
        class_name=doc.get("class", ""),
        student_name=doc.get("studentName", ""),
        birthdate=doc.get("birthdate", ""),
        admission_date=doc.get("admissiondate", ""),
        school_name=doc.get("schoolName", ""),
        parent_name=doc.get("parentName", ""),
        parent_email=doc.get("parentEmail", ""),
        contact_number=doc.get("contactNumber", ""),
        address=doc.get("address", ""),
        photo_url=doc.get("photoUrl"),
        photo_public_id=doc.get("photoPublicId"),
        created_at=doc.get("createdAt"),
        updated_at=doc.get("updatedAt"),
    )


def _fields(p: StudentProfile) -> dict:
    return {
        "class": p.class_name,
        "studentName": p.student_name,
        "birthdate": p.birthdate,
        "admissiondate": p.admission_date,
        "schoolName": p.school_name,
        "parentName": p.parent_name,
        "parentEmail": p.parent_email,
        "contactNumber": p.contact_number,
        "contactNormalized": normalize_contact(p.contact_number),
        "address": p.address,
        "photoUrl": p.photo_url,
        "photoPublicId": p.photo_public_id,
    }


def _exact_ci(value: str) -> dict:
    return {"$regex": f"^{re.escape(value)}$", "$options": "i"}


class MongoProfileRepository(ProfileRepository):
    def __init__(self, conn: DatabaseConnection):
        self._conn = conn

    @property
    def _profiles(self):
        return self._conn.collection(PROFILES)

    def search(self, *, search=None, class_name=None, sort_by="createdAt", ascending=False, limit=100):
        query: dict = {}
        if search:
            pattern = {"$regex": re.escape(search), "$options": "i"}
            query["$or"] = [
                {"studentName": pattern},
                {"parentName": pattern},
                {"contactNumber": pattern},
                {"parentEmail": pattern},
            ]
        if class_name:
            query["class"] = class_name

        with storage_errors("list student profiles"):
            cursor = (
                self._profiles.find(query)
                .sort(sort_by, ASCENDING if ascending else DESCENDING)
                .limit(int(limit))
            )
            return [_from_doc(d) for d in cursor]

    def get(self, profile_id: str) -> Optional[StudentProfile]:
        oid = try_object_id(profile_id)
        if oid is None:
            return None
        with storage_errors("load student profile"):
            doc = self._profiles.find_one({"_id": oid})
        return _from_doc(doc) if doc else None

    def find_duplicate(self, *, student_name, parent_name, exclude_id=None):
        query: dict = {"studentName": _exact_ci(student_name), "parentName": _exact_ci(parent_name)}
        oid = try_object_id(exclude_id) if exclude_id else None
        if oid is not None:
            query["_id"] = {"$ne": oid}
        with storage_errors("check duplicate profile"):
            doc = self._profiles.find_one(query)
        return _from_doc(doc) if doc else None

    def find_by_contact(self, contact_normalized: str) -> Optional[StudentProfile]:
        if not contact_normalized:
            return None
        with storage_errors("find profile by contact"):
            doc = self._profiles.find_one(
                {"contactNormalized": contact_normalized},
                sort=[("updatedAt", DESCENDING)],
            )
        return _from_doc(doc) if doc else None

    def insert(self, profile: StudentProfile) -> str:
        now = datetime.utcnow()
        with storage_errors("create student profile"):
            result = self._profiles.insert_one({**_fields(profile), "createdAt": now, "updatedAt": now})
        return str(result.inserted_id)

    def save(self, profile: StudentProfile) -> bool:
        oid = try_object_id(profile.profile_id)
        if oid is None:
            return False
        with storage_errors("update student profile"):
            result = self._profiles.update_one(
                {"_id": oid},
                {"$set": {**_fields(profile), "updatedAt": datetime.utcnow()}},
            )
        return result.matched_count > 0

    def delete(self, profile_id: str) -> bool:
        oid = try_object_id(profile_id)
        if oid is None:
            return False
        with storage_errors("delete student profile"):
            result = self._profiles.delete_one({"_id": oid})
        return result.deleted_count > 0
