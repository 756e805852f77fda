from __future__ import annotations

from datetime import datetime
from typing import Mapping, Optional, Protocol, Sequence

from ..core.enums import StudentStatus
from ..courses.schedule import EnrollmentSchedule
from .model import NewStudent, Student


class StudentRepository(Protocol):
    def get_by_id(self, student_id: int) -> Optional[Student]:
        raise NotImplementedError

    def get_by_qr_token(self, qr_token: str) -> Optional[Student]:
        raise NotImplementedError

    def list_all(self, *, status: Optional[StudentStatus] = None) -> Sequence[Student]:
        raise NotImplementedError

    def count_enrolled(self, course_id: int) -> int:
        """Students with the course in their schedule and not cancelled."""

        raise NotImplementedError

    def create(self, student: NewStudent) -> int:
        raise NotImplementedError

    def save_enrollment(
        self,
        *,
        student_id: int,
        schedule: EnrollmentSchedule,
        course_limits: Mapping[int, int],
        receipt_urls: Sequence[str],
        status: StudentStatus,
    ) -> bool:
        raise NotImplementedError

    def save_cancellations(
        self,
        *,
        student_id: int,
        cancelled_at: Mapping[int, datetime],
        cancelled_by: Mapping[int, int],
    ) -> bool:
        raise NotImplementedError

    def delete(self, student_id: int) -> bool:
        raise NotImplementedError
