from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Mapping, Optional

from ..core.enums import ApplicationStatus
from ..courses.schedule import EnrollmentSchedule
from ..students.model import ApplicantIdentity


@dataclass(frozen=True)
class Application:
    """Domain entity: a prospective enrollment awaiting a decision."""

    application_id: int
    identity: ApplicantIdentity
    schedule: EnrollmentSchedule
    course_limits: Mapping[int, int]
    receipt_urls: tuple[str, ...]
    status: ApplicationStatus
    created_at: datetime
    student_id: Optional[int] = None
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "application_id": self.application_id,
            **self.identity.to_dict(),
            "courses": self.schedule.to_json(),
            "course_limits": {str(k): v for k, v in self.course_limits.items()},
            "receipt_urls": list(self.receipt_urls),
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "student_id": self.student_id,
            "reviewed_by": self.reviewed_by,
            "reviewed_at": self.reviewed_at.isoformat() if self.reviewed_at else None,
        }


@dataclass(frozen=True)
class NewApplication:
    identity: ApplicantIdentity
    schedule: EnrollmentSchedule
    course_limits: Mapping[int, int]
    receipt_urls: tuple[str, ...]


@dataclass(frozen=True)
class ApplicationLink:
    """A public admissions link. Valid while now < expires_at."""

    token: str
    link_type: str
    expires_at: datetime
    created_at: Optional[datetime] = None
    created_by: Optional[int] = None

    def is_valid(self, now: datetime) -> bool:
        return self.expires_at > now

    def path(self) -> str:
        return f"/apply/{self.token}"

    def to_dict(self) -> dict:
        return {
            "token": self.token,
            "link_type": self.link_type,
            "expires_at": self.expires_at.isoformat(),
            "path": self.path(),
        }


@dataclass(frozen=True)
class SubmissionResult:
    """What an intake produced: a Student (operator fast path) or a pending Application."""

    kind: str
    id: int

    def to_dict(self) -> dict:
        return {"kind": self.kind, "id": self.id}
