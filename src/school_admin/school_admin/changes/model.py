from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional

from ..core.enums import ChangeStatus, ChangeType
from ..courses.schedule import EnrollmentSchedule


@dataclass(frozen=True)
class ChangePayload:
    """What a renewal/edit asks for: hours per course, new slots, receipts."""

    hours: Mapping[int, int]
    schedule: EnrollmentSchedule = field(default_factory=EnrollmentSchedule)
    receipt_urls: tuple[str, ...] = ()

    def to_json(self) -> dict:
        return {
            "course_limits": {str(k): v for k, v in self.hours.items()},
            "course_changes": self.schedule.to_json(),
            "receipts": list(self.receipt_urls),
        }

    @classmethod
    def from_json(cls, raw: Optional[Mapping[str, Any]]) -> "ChangePayload":
        raw = raw or {}
        return cls(
            hours={int(k): int(v) for k, v in (raw.get("course_limits") or {}).items()},
            schedule=EnrollmentSchedule.from_mapping(raw.get("course_changes") or {}, strict=False),
            receipt_urls=tuple(raw.get("receipts") or ()),
        )


@dataclass(frozen=True)
class ApplicationChange:
    """Domain entity: an enrolled student's request to modify hours or slots."""

    change_id: int
    student_id: int
    change_type: ChangeType
    payload: ChangePayload
    status: ChangeStatus
    created_at: datetime
    requested_by: Optional[int] = None
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "change_id": self.change_id,
            "student_id": self.student_id,
            "type": self.change_type.value,
            "payload": self.payload.to_json(),
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "requested_by": self.requested_by,
            "reviewed_by": self.reviewed_by,
            "reviewed_at": self.reviewed_at.isoformat() if self.reviewed_at else None,
        }


@dataclass(frozen=True)
class NewChange:
    student_id: int
    change_type: ChangeType
    payload: ChangePayload
    requested_by: Optional[int]
    status: ChangeStatus = ChangeStatus.PENDING
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None


@dataclass(frozen=True)
class ChangeOutcome:
    change_id: int
    applied: bool

    def to_dict(self) -> dict:
        return {"change_id": self.change_id, "applied": self.applied}
