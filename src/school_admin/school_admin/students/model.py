from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Mapping, Optional

from ..common.datetime_utils import parse_optional_date
from ..core.enums import StudentStatus
from ..core.exceptions import ValidationError
from ..courses.schedule import EnrollmentSchedule


def _first(data: Mapping[str, Any], *keys: str) -> str:
    for k in keys:
        v = data.get(k)
        if v is not None and str(v).strip():
            return str(v).strip()
    return ""


@dataclass(frozen=True)
class ApplicantIdentity:
    """Who the applicant/student is. The one place that knows legacy field names."""

    nick_name: str
    first_name: str = ""
    last_name: str = ""
    birth_date: Optional[date] = None
    guardian_contact: str = ""
    guardian_phone: str = ""

    @classmethod
    def from_form(cls, data: Mapping[str, Any]) -> "ApplicantIdentity":
        try:
            dob = parse_optional_date(_first(data, "birth_date", "dob"))
        except ValueError:
            raise ValidationError("Birth date must be YYYY-MM-DD")
        return cls(
            nick_name=_first(data, "nick_name", "nickname", "nick"),
            first_name=_first(data, "first_name", "first", "name"),
            last_name=_first(data, "last_name", "last"),
            birth_date=dob,
            guardian_contact=_first(data, "guardian_contact", "parent_line_id", "parent_email", "mail"),
            guardian_phone=_first(data, "guardian_phone", "parent_phone", "phone"),
        )

    @property
    def display_name(self) -> str:
        full = f"{self.first_name} {self.last_name}".strip()
        return full or self.nick_name

    def to_dict(self) -> dict:
        return {
            "nick_name": self.nick_name,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "birth_date": self.birth_date.isoformat() if self.birth_date else None,
            "guardian_contact": self.guardian_contact,
            "guardian_phone": self.guardian_phone,
        }


@dataclass(frozen=True)
class Student:
    """Domain entity: an enrolled student."""

    student_id: int
    identity: ApplicantIdentity
    schedule: EnrollmentSchedule
    course_limits: Mapping[int, int]
    qr_token: str
    joined_at: datetime
    status: StudentStatus = StudentStatus.ACTIVE
    receipt_urls: tuple[str, ...] = ()
    cancelled_at: Mapping[int, datetime] = field(default_factory=dict)
    cancelled_by: Mapping[int, int] = field(default_factory=dict)

    def limit_for(self, course_id: int) -> int:
        return int(self.course_limits.get(int(course_id), 0) or 0)

    def is_cancelled(self, course_id: int) -> bool:
        return int(course_id) in self.cancelled_at

    def active_course_ids(self) -> tuple[int, ...]:
        return tuple(cid for cid in self.schedule.course_ids if not self.is_cancelled(cid))

    def to_dict(self) -> dict:
        return {
            "student_id": self.student_id,
            **self.identity.to_dict(),
            "courses": self.schedule.to_json(),
            "course_limits": {str(k): v for k, v in self.course_limits.items()},
            "cancelled_at": {str(k): v.isoformat() for k, v in self.cancelled_at.items()},
            "cancelled_by": {str(k): v for k, v in self.cancelled_by.items()},
            "receipt_urls": list(self.receipt_urls),
            "status": self.status.value,
            "joined_at": self.joined_at.isoformat(),
        }


@dataclass(frozen=True)
class NewStudent:
    identity: ApplicantIdentity
    schedule: EnrollmentSchedule
    course_limits: Mapping[int, int]
    receipt_urls: tuple[str, ...]
    qr_token: str
    joined_at: datetime
    status: StudentStatus = StudentStatus.ACTIVE
