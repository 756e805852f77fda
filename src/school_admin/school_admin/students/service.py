from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Mapping, Optional, Sequence

from ..attendance.model import AttendanceRecord, HoursUsage, usage_from_records
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import now_local
from ..core.context import RequestContext
from ..core.enums import StudentStatus
from ..core.exceptions import CapacityReachedError, NotFoundError, ValidationError
from ..courses.repository import CourseRepository
from ..courses.schedule import EnrollmentSchedule
from .model import ApplicantIdentity, NewStudent, Student
from .repository import StudentRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StudentProfile:
    student: Student
    hours: Sequence[HoursUsage]
    attendance: Sequence[AttendanceRecord]

    def to_dict(self) -> dict:
        return {
            "student": self.student.to_dict(),
            "hours": [h.to_dict() for h in self.hours],
            "attendance": [a.to_dict() for a in self.attendance],
        }


class StudentService:
    """Roster use cases plus the enrollment primitives shared by admissions and change requests."""

    def __init__(self, students: StudentRepository, courses: CourseRepository, attendance: AttendanceRepository):
        self._students = students
        self._courses = courses
        self._attendance = attendance

    def _get(self, student_id: int) -> Student:
        student = self._students.get_by_id(int(student_id))
        if not student:
            raise NotFoundError("Student not found")
        return student

    def _check_capacity(self, course_ids) -> None:
        for cid in course_ids:
            course = self._courses.get_by_id(cid)
            if course and course.capacity > 0 and self._students.count_enrolled(cid) >= course.capacity:
                raise CapacityReachedError(f"{course.name} is full ({course.capacity} students)")

    def enroll(
        self,
        *,
        identity: ApplicantIdentity,
        schedule: EnrollmentSchedule,
        course_limits: Mapping[int, int],
        receipt_urls: Sequence[str],
        now: Optional[datetime] = None,
    ) -> int:
        """Create the Student row. Callers have validated identity/schedule/limits."""

        self._check_capacity(schedule.course_ids)
        student_id = self._students.create(
            NewStudent(
                identity=identity,
                schedule=schedule,
                course_limits=dict(course_limits),
                receipt_urls=tuple(receipt_urls),
                qr_token=uuid.uuid4().hex,
                joined_at=now or now_local(),
            )
        )
        logger.info("Enrolled student %s in courses %s", student_id, list(schedule.course_ids))
        return student_id

    def apply_enrollment_change(
        self,
        *,
        student_id: int,
        schedule_delta: EnrollmentSchedule,
        added_hours: Mapping[int, int],
        receipt_urls: Sequence[str],
        set_limits: Optional[Mapping[int, int]] = None,
    ) -> Student:
        """Merge new slots, add (or set) purchased hours, append receipts and reactivate.

        A cancelled course touched by the change is reinstated.
        """

        student = self._get(student_id)
        touched = {int(cid) for cid in (*schedule_delta.course_ids, *added_hours, *(set_limits or {}))}
        reinstated = sorted(cid for cid in touched if student.is_cancelled(cid))
        new_courses = [cid for cid in schedule_delta.course_ids if not student.schedule.enrolled_in(cid)]
        self._check_capacity([*new_courses, *reinstated])

        limits = dict(student.course_limits)
        for cid, hours in added_hours.items():
            limits[int(cid)] = limits.get(int(cid), 0) + int(hours)
        for cid, hours in (set_limits or {}).items():
            limits[int(cid)] = int(hours)

        schedule = student.schedule.merge(schedule_delta)
        receipts = tuple(student.receipt_urls) + tuple(receipt_urls)
        self._students.save_enrollment(
            student_id=student.student_id,
            schedule=schedule,
            course_limits=limits,
            receipt_urls=receipts,
            status=StudentStatus.ACTIVE,
        )
        if reinstated:
            cancelled_at = {cid: at for cid, at in student.cancelled_at.items() if cid not in reinstated}
            cancelled_by = {cid: by for cid, by in student.cancelled_by.items() if cid not in reinstated}
            self._students.save_cancellations(
                student_id=student.student_id,
                cancelled_at=cancelled_at,
                cancelled_by=cancelled_by,
            )
            logger.info("Reinstated courses %s for student %s", reinstated, student.student_id)
        logger.info("Applied enrollment change to student %s (hours=%s)", student.student_id, dict(added_hours))
        return self._get(student.student_id)

    def get_profile(self, ctx: RequestContext, student_id: int) -> StudentProfile:
        ctx.require_staff()
        student = self._get(student_id)
        records = list(self._attendance.list_for_student(student.student_id))
        hours = usage_from_records(student.course_limits, student.schedule.course_ids, records)
        return StudentProfile(student=student, hours=hours, attendance=records)

    def list_students(self, ctx: RequestContext, *, status: Optional[StudentStatus] = None) -> Sequence[Student]:
        ctx.require_staff()
        return self._students.list_all(status=status)

    def move_day(self, ctx: RequestContext, *, student_id: int, course_id: int, old_day: str, new_day: str) -> Student:
        ctx.require_staff()
        student = self._get(student_id)
        course = self._courses.get_by_id(int(course_id))
        if not course or not student.schedule.enrolled_in(course.course_id):
            raise ValidationError("Student is not enrolled in this course")
        if not course.offers_day(new_day):
            raise ValidationError(f"{course.name} does not run on {new_day}")

        schedule = student.schedule.move_day(course.course_id, old_day, new_day)
        self._save_schedule(student, schedule)
        return self._get(student.student_id)

    def replace_time(
        self,
        ctx: RequestContext,
        *,
        student_id: int,
        course_id: int,
        day: str,
        old_time: str,
        new_time: str,
    ) -> Student:
        ctx.require_staff()
        student = self._get(student_id)
        if not student.schedule.has_slot(int(course_id), day):
            raise ValidationError("Student has no lessons on that day")
        new_time = (new_time or "").strip()
        if not new_time:
            raise ValidationError("Time is required")

        schedule = student.schedule.replace_time(int(course_id), day, old_time, new_time)
        self._save_schedule(student, schedule)
        return self._get(student.student_id)

    def _save_schedule(self, student: Student, schedule: EnrollmentSchedule) -> None:
        self._students.save_enrollment(
            student_id=student.student_id,
            schedule=schedule,
            course_limits=student.course_limits,
            receipt_urls=student.receipt_urls,
            status=student.status,
        )

    def cancel_course(self, ctx: RequestContext, *, student_id: int, course_id: int, now: Optional[datetime] = None) -> Student:
        ctx.require_staff()
        if ctx.user_id is None:
            raise ValidationError("Your profile is missing; sign in again")

        student = self._get(student_id)
        if not student.schedule.enrolled_in(int(course_id)):
            raise ValidationError("Student is not enrolled in this course")

        cancelled_at = dict(student.cancelled_at)
        cancelled_by = dict(student.cancelled_by)
        cancelled_at[int(course_id)] = now or now_local()
        cancelled_by[int(course_id)] = int(ctx.user_id)
        self._students.save_cancellations(
            student_id=student.student_id,
            cancelled_at=cancelled_at,
            cancelled_by=cancelled_by,
        )
        logger.info("Course %s cancelled for student %s by %s", course_id, student.student_id, ctx.user_id)
        return self._get(student.student_id)

    def delete_student(self, ctx: RequestContext, student_id: int) -> None:
        ctx.require_admin()
        if not self._students.delete(int(student_id)):
            raise NotFoundError("Student not found")
        logger.info("Student %s deleted by %s", student_id, ctx.user_id)
