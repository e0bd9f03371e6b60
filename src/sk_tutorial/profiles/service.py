from __future__ import annotations

import logging
import re
from dataclasses import replace
from datetime import datetime
from typing import BinaryIO, Callable, Mapping, Optional

from ..common.datetime_utils import now_local
from ..common.validators import is_email
from ..core.constants import PROFILE_LIST_LIMIT
from ..core.exceptions import ConflictError, NotFoundError, UpstreamError, ValidationError
from ..database.mongo_base import to_object_id
from .model import StudentProfile
from .repository import MediaStorage, ProfileRepository

logger = logging.getLogger(__name__)

PHONE_RE = re.compile(r"^\+?[\d\s\-()]+$")
REQUIRED = ("class", "studentName", "birthdate", "schoolName", "parentName", "contactNumber", "address")
SORTABLE = {"createdAt", "updatedAt", "studentName", "class", "birthdate", "admissiondate"}


def validate_profile_input(data: Mapping) -> dict:
    """Trimmed field values; raises ValidationError listing every problem."""
    values = {k: str(data.get(k) or "").strip() for k in REQUIRED + ("admissiondate", "parentEmail")}

    errors = [f"{k} is required" for k in REQUIRED if not values[k]]
    if values["parentEmail"] and not is_email(values["parentEmail"]):
        errors.append("Invalid email format")
    if values["contactNumber"] and not PHONE_RE.match(values["contactNumber"]):
        errors.append("Invalid contact number format")
    if errors:
        raise ValidationError("Validation failed: " + "; ".join(errors))
    return values


def _profile_from(values: dict, **extra) -> StudentProfile:
    return StudentProfile(
        class_name=values["class"],
        student_name=values["studentName"],
        birthdate=values["birthdate"],
        admission_date=values["admissiondate"],
        school_name=values["schoolName"],
        parent_name=values["parentName"],
        parent_email=values["parentEmail"],
        contact_number=values["contactNumber"],
        address=values["address"],
        **extra,
    )


class ProfileService:
    def __init__(
        self,
        profiles: ProfileRepository,
        media: MediaStorage,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._profiles = profiles
        self._media = media
        self._clock = clock

    def list_profiles(
        self,
        *,
        search: Optional[str] = None,
        class_name: Optional[str] = None,
        sort_by: str = "createdAt",
        order: str = "desc",
    ) -> list[dict]:
        if sort_by not in SORTABLE:
            raise ValidationError(f"Invalid sort field: {sort_by}")

        rows = self._profiles.search(
            search=(search or "").strip() or None,
            class_name=class_name or None,
            sort_by=sort_by,
            ascending=order == "asc",
            limit=PROFILE_LIST_LIMIT,
        )
        today = self._clock().date()
        return [
            {**p.to_dict(), "rollNumber": f"SK{i:03d}", "age": p.age_on(today)}
            for i, p in enumerate(rows, start=1)
        ]

    def create_profile(self, data: Mapping, photo: Optional[BinaryIO] = None) -> StudentProfile:
        values = validate_profile_input(data)
        if self._profiles.find_duplicate(student_name=values["studentName"], parent_name=values["parentName"]):
            raise ConflictError("Student already exists with same name and parent")

        photo_url = photo_public_id = None
        if photo is not None:
            try:
                media = self._media.upload(photo)
                photo_url, photo_public_id = media.url, media.public_id
            except UpstreamError:
                # profile is still saved, just without a photo
                logger.exception("photo upload failed for new profile %s", values["studentName"])

        profile = _profile_from(values, photo_url=photo_url, photo_public_id=photo_public_id)
        profile_id = self._profiles.insert(profile)
        logger.info("profile created id=%s class=%s", profile_id, profile.class_name)
        return self._profiles.get(profile_id) or replace(profile, profile_id=profile_id)

    def update_profile(self, profile_id: str, data: Mapping, photo: Optional[BinaryIO] = None) -> StudentProfile:
        if not profile_id:
            raise ValidationError("Valid student ID is required")
        to_object_id(profile_id, "student ID")
        values = validate_profile_input(data)

        current = self._profiles.get(profile_id)
        if not current:
            raise NotFoundError("Student not found")

        photo_url, photo_public_id = current.photo_url, current.photo_public_id
        if photo is not None:
            media = self._media.upload(photo)
            photo_url, photo_public_id = media.url, media.public_id

        updated = _profile_from(
            values,
            profile_id=current.profile_id,
            photo_url=photo_url,
            photo_public_id=photo_public_id,
            created_at=current.created_at,
        )
        if not self._profiles.save(updated):
            raise NotFoundError("Student not found")

        if current.photo_public_id and current.photo_public_id != photo_public_id:
            self._discard_photo(current.photo_public_id)
        return self._profiles.get(profile_id) or updated

    def delete_profile(self, profile_id: str) -> StudentProfile:
        if not profile_id:
            raise ValidationError("Valid student ID is required")
        to_object_id(profile_id, "student ID")

        current = self._profiles.get(profile_id)
        if not current or not self._profiles.delete(profile_id):
            raise NotFoundError("Student not found")

        if current.photo_public_id:
            self._discard_photo(current.photo_public_id)
        logger.info("profile deleted id=%s", profile_id)
        return current

    def _discard_photo(self, public_id: str) -> None:
        try:
            self._media.destroy(public_id)
        except UpstreamError:
            logger.exception("could not delete photo %s", public_id)
