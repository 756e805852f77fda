from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import CheckinState


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one attendance row.

    course_id=None means a scan that has not been assigned to a course yet.
    approved_by=None means pending: it does not count toward used hours.
    """

    attendance_id: int
    student_id: int
    course_id: Optional[int]
    attended_on: date
    approved_by: Optional[int] = None
    created_at: Optional[datetime] = None

    @property
    def is_pending(self) -> bool:
        return self.approved_by is None

    def to_dict(self) -> dict:
        return {
            "attendance_id": self.attendance_id,
            "student_id": self.student_id,
            "course_id": self.course_id,
            "attended_on": self.attended_on.isoformat(),
            "approved_by": self.approved_by,
            "pending": self.is_pending,
        }


@dataclass(frozen=True)
class HoursUsage:
    """Read-model: purchased vs consumed hours for one (student, course)."""

    course_id: int
    used: int
    purchased: int

    @property
    def left(self) -> int:
        return max(0, self.purchased - self.used)

    @property
    def unlimited(self) -> bool:
        return self.purchased <= 0

    @property
    def exhausted(self) -> bool:
        return not self.unlimited and self.used >= self.purchased

    @property
    def status(self) -> str:
        return "ongoing" if self.purchased - self.used > 0 else "renewal_needed"

    def to_dict(self) -> dict:
        return {
            "course_id": self.course_id,
            "used": self.used,
            "purchased": self.purchased,
            "left": self.left,
            "status": self.status,
        }


@dataclass(frozen=True)
class CheckinResult:
    student_id: int
    course_id: int
    state: CheckinState
    hours: HoursUsage

    def to_dict(self) -> dict:
        return {
            "student_id": self.student_id,
            "course_id": self.course_id,
            "state": self.state.value,
            "hours": self.hours.to_dict(),
        }


def usage_from_records(course_limits, course_ids, records) -> list[HoursUsage]:
    """Hours per course computed from a student's attendance rows (approved only)."""

    used: dict[int, int] = {}
    for r in records:
        if r.is_pending or r.course_id is None:
            continue
        used[r.course_id] = used.get(r.course_id, 0) + 1
    return [
        HoursUsage(course_id=cid, used=used.get(cid, 0), purchased=int(course_limits.get(cid, 0) or 0))
        for cid in course_ids
    ]
