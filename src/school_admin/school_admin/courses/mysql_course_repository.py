from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, json_dump, json_load
from .model import Course, CourseDraft
from .repository import CourseRepository


def _row_to_course(r: dict) -> Course:
    times = json_load(r.get("times"), {})
    return Course(
        course_id=int(r["course_id"]),
        name=r["name"],
        weekdays=tuple(json_load(r.get("weekdays"), [])),
        times={d: tuple(ts) for d, ts in times.items()},
        capacity=int(r.get("capacity") or 0),
    )


class MySQLCourseRepository(CourseRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_all(self) -> Sequence[Course]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT course_id, name, weekdays, times, capacity FROM courses ORDER BY name")
            return [_row_to_course(r) for r in fetchall(cur)]

    def get_by_id(self, course_id: int) -> Optional[Course]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT course_id, name, weekdays, times, capacity FROM courses WHERE course_id=%s",
                (int(course_id),),
            )
            r = fetchone(cur)
            return _row_to_course(r) if r else None

    def create(self, draft: CourseDraft) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO courses(name, weekdays, times, capacity)
                VALUES(%s,%s,%s,%s)
                """,
                (
                    draft.name,
                    json_dump(list(draft.weekdays)),
                    json_dump({d: list(ts) for d, ts in draft.times.items()}),
                    int(draft.capacity),
                ),
            )
            return int(cur.lastrowid)

    def update(self, draft: CourseDraft) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE courses
                SET name=%s, weekdays=%s, times=%s, capacity=%s
                WHERE course_id=%s
                """,
                (
                    draft.name,
                    json_dump(list(draft.weekdays)),
                    json_dump({d: list(ts) for d, ts in draft.times.items()}),
                    int(draft.capacity),
                    int(draft.course_id),
                ),
            )
            return cur.rowcount > 0

    def delete(self, course_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM courses WHERE course_id=%s", (int(course_id),))
            return cur.rowcount > 0
