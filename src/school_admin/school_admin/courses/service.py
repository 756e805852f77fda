from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Sequence

from ..common.validators import require_non_empty
from ..core.constants import WEEKDAYS
from ..core.context import RequestContext
from ..core.exceptions import NotFoundError, ValidationError
from ..students.model import Student
from ..students.repository import StudentRepository
from .model import Course, CourseDraft
from .repository import CourseRepository

logger = logging.getLogger(__name__)


class CourseService:
    def __init__(self, courses: CourseRepository, students: StudentRepository):
        self._courses = courses
        self._students = students

    def catalog(self) -> dict[int, Course]:
        return {c.course_id: c for c in self._courses.list_all()}

    def list_courses(self) -> Sequence[Course]:
        return self._courses.list_all()

    def get_course(self, course_id: int) -> Course:
        course = self._courses.get_by_id(int(course_id))
        if not course:
            raise NotFoundError("Course not found")
        return course

    @staticmethod
    def build_draft(data: Mapping[str, Any], *, course_id: Optional[int] = None) -> CourseDraft:
        name = require_non_empty(str(data.get("name") or ""), "Course name")

        weekdays: list[str] = []
        for d in data.get("weekdays") or []:
            if d not in WEEKDAYS:
                raise ValidationError(f"Unknown weekday: {d}")
            if d not in weekdays:
                weekdays.append(d)

        times: dict[str, tuple[str, ...]] = {}
        for day, slots in (data.get("times") or {}).items():
            if day not in weekdays:
                raise ValidationError(f"Times given for {day}, which is not a course day")
            clean: list[str] = []
            for s in slots or []:
                s = str(s).strip()
                if s and s not in clean:
                    clean.append(s)
            times[day] = tuple(clean)

        try:
            capacity = int(data.get("capacity") or 0)
        except (TypeError, ValueError):
            raise ValidationError("Capacity must be a whole number")
        if capacity < 0:
            raise ValidationError("Capacity cannot be negative")

        return CourseDraft(
            name=name,
            weekdays=tuple(weekdays),
            times=times,
            capacity=capacity,
            course_id=course_id,
        )

    def save_course(self, ctx: RequestContext, draft: CourseDraft) -> int:
        ctx.require_admin()
        if draft.course_id is None:
            course_id = self._courses.create(draft)
            logger.info("Course %s created (%s)", course_id, draft.name)
            return course_id

        if not self._courses.update(draft):
            raise NotFoundError("Course not found")
        return int(draft.course_id)

    def delete_course(self, ctx: RequestContext, course_id: int) -> None:
        ctx.require_admin()
        if not self._courses.delete(int(course_id)):
            raise NotFoundError("Course not found")
        logger.info("Course %s deleted", course_id)

    def students_in_slot(
        self,
        ctx: RequestContext,
        *,
        course_id: int,
        day: Optional[str] = None,
        time: Optional[str] = None,
    ) -> list[Student]:
        """Students enrolled in a course, optionally narrowed to a day and time."""

        ctx.require_staff()
        return [
            s
            for s in self._students.list_all()
            if s.schedule.has_slot(int(course_id), day or None, time or None)
        ]
