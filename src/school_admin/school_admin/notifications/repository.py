from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Sequence

from ..core.enums import NotificationType
from .model import Notification


class NotificationRepository(Protocol):
    def create(
        self,
        *,
        type: NotificationType,
        student_id: Optional[int],
        payload: Mapping[str, Any],
    ) -> Notification:
        raise NotImplementedError

    def list_recent(self, *, limit: int) -> Sequence[Notification]:
        raise NotImplementedError

    def count_unread(self) -> int:
        raise NotImplementedError

    def mark_read(self, notification_id: int) -> bool:
        raise NotImplementedError
