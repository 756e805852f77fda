from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import ChangeStatus, ChangeType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, json_dump, json_load
from .model import ApplicationChange, ChangePayload, NewChange
from .repository import ChangeRepository

_COLUMNS = "change_id, student_id, change_type, payload, status, requested_by, reviewed_by, reviewed_at, created_at"


def _opt_int(v) -> Optional[int]:
    return int(v) if v is not None else None


def _row_to_change(r: dict) -> ApplicationChange:
    return ApplicationChange(
        change_id=int(r["change_id"]),
        student_id=int(r["student_id"]),
        change_type=ChangeType(r["change_type"]),
        payload=ChangePayload.from_json(json_load(r.get("payload"), {})),
        status=ChangeStatus(r["status"]),
        created_at=r["created_at"],
        requested_by=_opt_int(r.get("requested_by")),
        reviewed_by=_opt_int(r.get("reviewed_by")),
        reviewed_at=r.get("reviewed_at"),
    )


class MySQLChangeRepository(ChangeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, change: NewChange) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO application_changes(
                    student_id, change_type, payload, status, requested_by, reviewed_by, reviewed_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(change.student_id),
                    change.change_type.value,
                    json_dump(change.payload.to_json()),
                    change.status.value,
                    change.requested_by,
                    change.reviewed_by,
                    change.reviewed_at,
                ),
            )
            return int(cur.lastrowid)

    def get_by_id(self, change_id: int) -> Optional[ApplicationChange]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM application_changes WHERE change_id=%s", (int(change_id),))
            r = fetchone(cur)
            return _row_to_change(r) if r else None

    def list_all(
        self,
        *,
        status: Optional[ChangeStatus] = None,
        change_type: Optional[ChangeType] = None,
        student_id: Optional[int] = None,
        oldest_first: bool = False,
    ) -> Sequence[ApplicationChange]:
        clauses: list[str] = []
        params: list[object] = []
        if status is not None:
            clauses.append("status=%s")
            params.append(status.value)
        if change_type is not None:
            clauses.append("change_type=%s")
            params.append(change_type.value)
        if student_id is not None:
            clauses.append("student_id=%s")
            params.append(int(student_id))
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        order = "ASC" if oldest_first else "DESC"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM application_changes {where} ORDER BY created_at {order}, change_id {order}",
                tuple(params),
            )
            return [_row_to_change(r) for r in fetchall(cur)]

    def count_by_status(self, status: ChangeStatus) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM application_changes WHERE status=%s", (status.value,))
            r = fetchone(cur)
            return int(r["n"]) if r else 0

    def set_status(
        self,
        *,
        change_id: int,
        status: ChangeStatus,
        reviewed_by: Optional[int],
        reviewed_at: datetime,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE application_changes SET status=%s, reviewed_by=%s, reviewed_at=%s WHERE change_id=%s",
                (status.value, reviewed_by, reviewed_at, int(change_id)),
            )
            return cur.rowcount > 0
