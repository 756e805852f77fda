from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional

from ..core.enums import NotificationType


@dataclass(frozen=True)
class Notification:
    notification_id: int
    type: NotificationType
    created_at: datetime
    student_id: Optional[int] = None
    payload: Mapping[str, Any] = field(default_factory=dict)
    read: bool = False

    @property
    def dedupe_key(self) -> str:
        return f"{self.type.value}_{self.payload.get('application_id', '')}_{self.created_at.isoformat()}"

    def to_dict(self) -> dict:
        return {
            "notification_id": self.notification_id,
            "type": self.type.value,
            "student_id": self.student_id,
            "payload": dict(self.payload),
            "read": self.read,
            "created_at": self.created_at.isoformat(),
        }
