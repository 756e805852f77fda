from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def list_for_student(self, student_id: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_for_date(self, attended_on: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_pending(self) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def count_approved(self, student_id: int, course_id: int) -> int:
        raise NotImplementedError

    def create(
        self,
        *,
        student_id: int,
        course_id: Optional[int],
        attended_on: date,
        approved_by: Optional[int],
    ) -> int:
        """Insert one row. Raises DuplicateCheckinError on the unique index."""

        raise NotImplementedError

    def approve_pending(self, *, attendance_id: int, course_ids: Sequence[int], approved_by: int) -> list[int]:
        """Assign course_ids[0] to the pending row and add one row per remaining id.

        All-or-nothing. Returns the ids of every approved row, original first.
        """

        raise NotImplementedError

    def delete(self, attendance_id: int) -> bool:
        raise NotImplementedError
