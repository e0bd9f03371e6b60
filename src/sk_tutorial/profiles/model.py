from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional


@dataclass(frozen=True)
class StudentProfile:
    """ID-card record, kept apart from the enrolment directory."""

    class_name: str
    student_name: str
    birthdate: str
    school_name: str
    parent_name: str
    contact_number: str
    address: str
    admission_date: str = ""
    parent_email: str = ""
    photo_url: Optional[str] = None
    photo_public_id: Optional[str] = None
    profile_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def age_on(self, today: date) -> Optional[int]:
        try:
            born = date.fromisoformat(self.birthdate[:10])
        except ValueError:
            return None
        return today.year - born.year - ((today.month, today.day) < (born.month, born.day))

    def to_dict(self) -> dict:
        return {
            "id": self.profile_id,
            "class": self.class_name,
            "studentName": self.student_name,
            "birthdate": self.birthdate,
            "admissiondate": self.admission_date,
            "schoolName": self.school_name,
            "parentName": self.parent_name,
            "parentEmail": self.parent_email,
            "contactNumber": self.contact_number,
            "address": self.address,
            "photoUrl": self.photo_url,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass(frozen=True)
class UploadedMedia:
    url: str
    public_id: str
