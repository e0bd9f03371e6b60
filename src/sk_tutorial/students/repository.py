from __future__ import annotations

from datetime import date
from typing import Mapping, Optional, Protocol, Sequence

from .model import FeeEntry, Student


class StudentRepository(Protocol):
    def search(
        self,
        *,
        search: Optional[str] = None,
        grade: Optional[str] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> tuple[Sequence[Student], int]:
        """Active students matching the filter, newest first, plus the total count."""

        raise NotImplementedError

    def list_active(self) -> Sequence[Student]:
        raise NotImplementedError

    def get_active(self, student_id: str) -> Optional[Student]:
        raise NotImplementedError

    def get_active_many(self, student_ids: Sequence[str]) -> Mapping[str, Student]:
        """One round trip; ids that are unknown, inactive or malformed are absent."""

        raise NotImplementedError

    def find_active_duplicate(self, *, name: str, grade: str, exclude_id: Optional[str] = None) -> Optional[Student]:
        raise NotImplementedError

    def insert(self, student: Student, *, created_by: str) -> str:
        raise NotImplementedError

    def save(self, student: Student, *, updated_by: str) -> bool:
        """Write the student's mutable fields back (details and fee ledger)."""

        raise NotImplementedError

    def soft_delete(self, student_id: str, *, deleted_by: str) -> bool:
        raise NotImplementedError

    def set_fee_status(
        self,
        student_id: str,
        *,
        entries: Sequence[FeeEntry],
        last_fee_paid_date: Optional[date],
        updated_by: str,
    ) -> bool:
        """Replace the fee ledger; also clears the fee-date provenance flag."""

        raise NotImplementedError

    def append_fee_entries(self, entries: Mapping[str, FeeEntry]) -> int:
        """Bulk-append one entry per student id. Returns the number of students modified."""

        raise NotImplementedError
