from __future__ import annotations

from typing import BinaryIO, Optional, Protocol, Sequence

from .model import StudentProfile, UploadedMedia


class ProfileRepository(Protocol):
    def search(
        self,
        *,
        search: Optional[str] = None,
        class_name: Optional[str] = None,
        sort_by: str = "createdAt",
        ascending: bool = False,
        limit: int = 100,
    ) -> Sequence[StudentProfile]:
        raise NotImplementedError

    def get(self, profile_id: str) -> Optional[StudentProfile]:
        raise NotImplementedError

    def find_duplicate(
        self, *, student_name: str, parent_name: str, exclude_id: Optional[str] = None
    ) -> Optional[StudentProfile]:
        """Case-insensitive exact match on (studentName, parentName)."""

        raise NotImplementedError

    def find_by_contact(self, contact_normalized: str) -> Optional[StudentProfile]:
        raise NotImplementedError

    def insert(self, profile: StudentProfile) -> str:
        raise NotImplementedError

    def save(self, profile: StudentProfile) -> bool:
        raise NotImplementedError

    def delete(self, profile_id: str) -> bool:
        raise NotImplementedError


class MediaStorage(Protocol):
    def upload(self, file: BinaryIO) -> UploadedMedia:
        raise NotImplementedError

    def destroy(self, public_id: str) -> None:
        raise NotImplementedError
