from __future__ import annotations

from datetime import datetime
from typing import Mapping, Optional, Sequence

from ..core.enums import StudentStatus
from ..courses.schedule import EnrollmentSchedule
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, json_dump, json_load
from .model import ApplicantIdentity, NewStudent, Student
from .repository import StudentRepository

_COLUMNS = """
    student_id, nick_name, first_name, last_name, birth_date, guardian_contact, guardian_phone,
    courses, course_limits, cancelled_at, cancelled_by, receipt_urls, qr_token, status, joined_at
"""


def identity_from_row(r: dict) -> ApplicantIdentity:
    return ApplicantIdentity(
        nick_name=r["nick_name"],
        first_name=r.get("first_name") or "",
        last_name=r.get("last_name") or "",
        birth_date=r.get("birth_date"),
        guardian_contact=r.get("guardian_contact") or "",
        guardian_phone=r.get("guardian_phone") or "",
    )


def identity_params(identity: ApplicantIdentity) -> tuple:
    return (
        identity.nick_name,
        identity.first_name or None,
        identity.last_name or None,
        identity.birth_date,
        identity.guardian_contact or None,
        identity.guardian_phone or None,
    )


def int_keys(raw: Mapping) -> dict[int, int]:
    return {int(k): int(v) for k, v in (raw or {}).items()}


def _row_to_student(r: dict) -> Student:
    cancelled_at = {int(k): datetime.fromisoformat(v) for k, v in json_load(r.get("cancelled_at"), {}).items()}
    return Student(
        student_id=int(r["student_id"]),
        identity=identity_from_row(r),
        schedule=EnrollmentSchedule.from_mapping(json_load(r.get("courses"), {}), strict=False),
        course_limits=int_keys(json_load(r.get("course_limits"), {})),
        cancelled_at=cancelled_at,
        cancelled_by=int_keys(json_load(r.get("cancelled_by"), {})),
        receipt_urls=tuple(json_load(r.get("receipt_urls"), [])),
        qr_token=r["qr_token"],
        status=StudentStatus(r["status"]),
        joined_at=r["joined_at"],
    )


class MySQLStudentRepository(StudentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, student_id: int) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM students WHERE student_id=%s", (int(student_id),))
            r = fetchone(cur)
            return _row_to_student(r) if r else None

    def get_by_qr_token(self, qr_token: str) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM students WHERE qr_token=%s", (qr_token,))
            r = fetchone(cur)
            return _row_to_student(r) if r else None

    def list_all(self, *, status: Optional[StudentStatus] = None) -> Sequence[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            if status is None:
                cur.execute(f"SELECT {_COLUMNS} FROM students ORDER BY joined_at DESC")
            else:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM students WHERE status=%s ORDER BY joined_at DESC",
                    (status.value,),
                )
            return [_row_to_student(r) for r in fetchall(cur)]

    def count_enrolled(self, course_id: int) -> int:
        path = f'$."{int(course_id)}"'
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(*) AS n
                FROM students
                WHERE JSON_CONTAINS_PATH(courses, 'one', %s)
                  AND NOT JSON_CONTAINS_PATH(cancelled_at, 'one', %s)
                """,
                (path, path),
            )
            r = fetchone(cur)
            return int(r["n"]) if r else 0

    def create(self, student: NewStudent) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO students(
                    nick_name, first_name, last_name, birth_date, guardian_contact, guardian_phone,
                    courses, course_limits, cancelled_at, cancelled_by, receipt_urls, qr_token, status, joined_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,'{}','{}',%s,%s,%s,%s)
                """,
                identity_params(student.identity)
                + (
                    json_dump(student.schedule.to_json()),
                    json_dump({str(k): v for k, v in student.course_limits.items()}),
                    json_dump(list(student.receipt_urls)),
                    student.qr_token,
                    student.status.value,
                    student.joined_at,
                ),
            )
            return int(cur.lastrowid)

    def save_enrollment(
        self,
        *,
        student_id: int,
        schedule: EnrollmentSchedule,
        course_limits: Mapping[int, int],
        receipt_urls: Sequence[str],
        status: StudentStatus,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE students
                SET courses=%s, course_limits=%s, receipt_urls=%s, status=%s
                WHERE student_id=%s
                """,
                (
                    json_dump(schedule.to_json()),
                    json_dump({str(k): v for k, v in course_limits.items()}),
                    json_dump(list(receipt_urls)),
                    status.value,
                    int(student_id),
                ),
            )
            return cur.rowcount > 0

    def save_cancellations(
        self,
        *,
        student_id: int,
        cancelled_at: Mapping[int, datetime],
        cancelled_by: Mapping[int, int],
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE students SET cancelled_at=%s, cancelled_by=%s WHERE student_id=%s",
                (
                    json_dump({str(k): v.isoformat() for k, v in cancelled_at.items()}),
                    json_dump({str(k): v for k, v in cancelled_by.items()}),
                    int(student_id),
                ),
            )
            return cur.rowcount > 0

    def delete(self, student_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM students WHERE student_id=%s", (int(student_id),))
            return cur.rowcount > 0
