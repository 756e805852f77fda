from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import ApplicationStatus
from ..courses.schedule import EnrollmentSchedule
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, json_dump, json_load
from ..students.mysql_student_repository import identity_from_row, identity_params, int_keys
from .model import Application, NewApplication
from .repository import ApplicationRepository

_COLUMNS = """
    application_id, nick_name, first_name, last_name, birth_date, guardian_contact, guardian_phone,
    courses, course_limits, receipt_urls, status, student_id, reviewed_by, reviewed_at, created_at
"""


def _row_to_application(r: dict) -> Application:
    return Application(
        application_id=int(r["application_id"]),
        identity=identity_from_row(r),
        schedule=EnrollmentSchedule.from_mapping(json_load(r.get("courses"), {}), strict=False),
        course_limits=int_keys(json_load(r.get("course_limits"), {})),
        receipt_urls=tuple(json_load(r.get("receipt_urls"), [])),
        status=ApplicationStatus(r["status"]),
        created_at=r["created_at"],
        student_id=int(r["student_id"]) if r.get("student_id") is not None else None,
        reviewed_by=int(r["reviewed_by"]) if r.get("reviewed_by") is not None else None,
        reviewed_at=r.get("reviewed_at"),
    )


class MySQLApplicationRepository(ApplicationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, application: NewApplication) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO applications(
                    nick_name, first_name, last_name, birth_date, guardian_contact, guardian_phone,
                    courses, course_limits, receipt_urls, status
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,'pending')
                """,
                identity_params(application.identity)
                + (
                    json_dump(application.schedule.to_json()),
                    json_dump({str(k): v for k, v in application.course_limits.items()}),
                    json_dump(list(application.receipt_urls)),
                ),
            )
            return int(cur.lastrowid)

    def get_by_id(self, application_id: int) -> Optional[Application]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM applications WHERE application_id=%s", (int(application_id),))
            r = fetchone(cur)
            return _row_to_application(r) if r else None

    def list_all(
        self,
        *,
        status: Optional[ApplicationStatus] = None,
        oldest_first: bool = False,
        limit: int = 500,
    ) -> Sequence[Application]:
        clauses: list[str] = []
        params: list[object] = []
        if status is not None:
            clauses.append("status=%s")
            params.append(status.value)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        order = "ASC" if oldest_first else "DESC"
        params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM applications {where} ORDER BY created_at {order}, application_id {order} LIMIT %s",
                tuple(params),
            )
            return [_row_to_application(r) for r in fetchall(cur)]

    def count_by_status(self, status: ApplicationStatus) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM applications WHERE status=%s", (status.value,))
            r = fetchone(cur)
            return int(r["n"]) if r else 0

    def set_status(
        self,
        *,
        application_id: int,
        status: ApplicationStatus,
        reviewed_by: Optional[int],
        reviewed_at: datetime,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE applications SET status=%s, reviewed_by=%s, reviewed_at=%s WHERE application_id=%s",
                (status.value, reviewed_by, reviewed_at, int(application_id)),
            )
            return cur.rowcount > 0

    def attach_student(self, *, application_id: int, student_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE applications SET student_id=%s WHERE application_id=%s AND student_id IS NULL",
                (int(student_id), int(application_id)),
            )
            return cur.rowcount > 0
