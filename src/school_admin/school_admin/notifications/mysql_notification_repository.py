from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

from ..core.enums import NotificationType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, json_dump, json_load
from .model import Notification
from .repository import NotificationRepository

_COLUMNS = "notification_id, student_id, type, payload, is_read, created_at"


def _row_to_notification(r: dict) -> Notification:
    return Notification(
        notification_id=int(r["notification_id"]),
        student_id=int(r["student_id"]) if r.get("student_id") is not None else None,
        type=NotificationType(r["type"]),
        payload=json_load(r.get("payload"), {}),
        read=bool(r.get("is_read")),
        created_at=r["created_at"],
    )


class MySQLNotificationRepository(NotificationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(
        self,
        *,
        type: NotificationType,
        student_id: Optional[int],
        payload: Mapping[str, Any],
    ) -> Notification:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO notifications(student_id, type, payload) VALUES(%s,%s,%s)",
                (student_id, type.value, json_dump(dict(payload))),
            )
            new_id = int(cur.lastrowid)
            cur.execute(f"SELECT {_COLUMNS} FROM notifications WHERE notification_id=%s", (new_id,))
            return _row_to_notification(fetchone(cur))

    def list_recent(self, *, limit: int) -> Sequence[Notification]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM notifications ORDER BY created_at DESC, notification_id DESC LIMIT %s",
                (int(limit),),
            )
            return [_row_to_notification(r) for r in fetchall(cur)]

    def count_unread(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM notifications WHERE is_read=0")
            r = fetchone(cur)
            return int(r["n"]) if r else 0

    def mark_read(self, notification_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE notifications SET is_read=1 WHERE notification_id=%s", (int(notification_id),))
            return cur.rowcount > 0
