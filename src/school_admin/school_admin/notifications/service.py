from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from ..core.constants import DEFAULT_NOTIFICATION_LIMIT
from ..core.context import RequestContext
from ..core.enums import NotificationType
from ..core.exceptions import NotFoundError
from .hub import NotificationHub
from .model import Notification
from .repository import NotificationRepository

logger = logging.getLogger(__name__)


class NotificationService:
    def __init__(self, notifications: NotificationRepository, hub: NotificationHub):
        self._notifications = notifications
        self._hub = hub

    @property
    def hub(self) -> NotificationHub:
        return self._hub

    def notify(
        self,
        type: NotificationType,
        *,
        student_id: Optional[int] = None,
        payload: Optional[Mapping[str, Any]] = None,
    ) -> Notification:
        n = self._notifications.create(type=type, student_id=student_id, payload=dict(payload or {}))
        self._hub.publish(n)
        logger.info("Notification %s created (id=%s)", type.value, n.notification_id)
        return n

    def list_recent(self, ctx: RequestContext, *, limit: int = DEFAULT_NOTIFICATION_LIMIT) -> list[Notification]:
        ctx.require_staff()
        out: list[Notification] = []
        seen: set[str] = set()
        for n in self._notifications.list_recent(limit=int(limit)):
            if n.dedupe_key in seen:
                continue
            seen.add(n.dedupe_key)
            out.append(n)
        return out

    def unread_count(self, ctx: RequestContext) -> int:
        ctx.require_staff()
        return self._notifications.count_unread()

    def mark_read(self, ctx: RequestContext, notification_id: int) -> None:
        ctx.require_staff()
        if not self._notifications.mark_read(int(notification_id)):
            raise NotFoundError("Notification not found")
