from __future__ import annotations

from typing import Mapping, Optional, Protocol, Sequence

from .model import MonthWrite, YearRecord


class AttendanceRepository(Protocol):
    """Repository interface for attendance year-records."""

    def get_many(self, keys: Sequence[tuple[str, int]]) -> Mapping[tuple[str, int], YearRecord]:
        """Existing year-records for (student_id, year) pairs, in one round trip."""

        raise NotImplementedError

    def bulk_apply(self, *, updates: Sequence[MonthWrite], inserts: Sequence[YearRecord], actor: str) -> tuple[int, int]:
        """Apply month replacements and new year-records. Returns (updated, created).

        New records are upserts on (student_id, year), so a record created meanwhile
        by another request gets the month merged in and counts as updated.
        Not transactional: a failure part way leaves earlier writes in place.
        """

        raise NotImplementedError

    def list_for_month(
        self,
        *,
        year: int,
        month_name: str,
        grade: Optional[str] = None,
        student_id: Optional[str] = None,
    ) -> Sequence[YearRecord]:
        """Year-records that carry the month key, sorted by grade then name."""

        raise NotImplementedError

    def months_with_data(self, year: int) -> Sequence[str]:
        raise NotImplementedError

    def distinct_years(self) -> Sequence[int]:
        raise NotImplementedError
