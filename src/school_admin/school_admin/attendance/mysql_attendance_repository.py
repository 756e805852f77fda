from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..core.exceptions import DuplicateCheckinError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key
from .model import AttendanceRecord
from .repository import AttendanceRepository

_COLUMNS = "attendance_id, student_id, course_id, attended_on, approved_by, created_at"


def _row_to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        student_id=int(r["student_id"]),
        course_id=int(r["course_id"]) if r.get("course_id") is not None else None,
        attended_on=r["attended_on"],
        approved_by=int(r["approved_by"]) if r.get("approved_by") is not None else None,
        created_at=r.get("created_at"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance WHERE attendance_id=%s", (int(attendance_id),))
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def list_for_student(self, student_id: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance WHERE student_id=%s ORDER BY attended_on DESC",
                (int(student_id),),
            )
            return [_row_to_record(r) for r in fetchall(cur)]

    def list_for_date(self, attended_on: date) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance WHERE attended_on=%s", (attended_on,))
            return [_row_to_record(r) for r in fetchall(cur)]

    def list_pending(self) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance WHERE approved_by IS NULL ORDER BY attended_on, attendance_id"
            )
            return [_row_to_record(r) for r in fetchall(cur)]

    def count_approved(self, student_id: int, course_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(*) AS n
                FROM attendance
                WHERE student_id=%s AND course_id=%s AND approved_by IS NOT NULL
                """,
                (int(student_id), int(course_id)),
            )
            r = fetchone(cur)
            return int(r["n"]) if r else 0

    def create(
        self,
        *,
        student_id: int,
        course_id: Optional[int],
        attended_on: date,
        approved_by: Optional[int],
    ) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance(student_id, course_id, attended_on, approved_by)
                    VALUES(%s,%s,%s,%s)
                    """,
                    (int(student_id), course_id, attended_on, approved_by),
                )
                return int(cur.lastrowid)
        except Exception as e:
            if is_duplicate_key(e):
                raise DuplicateCheckinError("Attendance already recorded for this day") from e
            raise

    def approve_pending(self, *, attendance_id: int, course_ids: Sequence[int], approved_by: int) -> list[int]:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    f"SELECT {_COLUMNS} FROM attendance WHERE attendance_id=%s FOR UPDATE",
                    (int(attendance_id),),
                )
                r = fetchone(cur)
                if not r or r.get("approved_by") is not None:
                    return []
                row = _row_to_record(r)

                cur.execute(
                    "UPDATE attendance SET course_id=%s, approved_by=%s WHERE attendance_id=%s",
                    (int(course_ids[0]), int(approved_by), row.attendance_id),
                )
                ids = [row.attendance_id]
                for cid in course_ids[1:]:
                    cur.execute(
                        """
                        INSERT INTO attendance(student_id, course_id, attended_on, approved_by)
                        VALUES(%s,%s,%s,%s)
                        """,
                        (row.student_id, int(cid), row.attended_on, int(approved_by)),
                    )
                    ids.append(int(cur.lastrowid))
                return ids
        except Exception as e:
            if is_duplicate_key(e):
                raise DuplicateCheckinError("Attendance already recorded for this day") from e
            raise

    def delete(self, attendance_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM attendance WHERE attendance_id=%s", (int(attendance_id),))
            return cur.rowcount > 0
