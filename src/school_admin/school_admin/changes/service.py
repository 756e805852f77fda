from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence

from ..common.datetime_utils import now_local
from ..common.validators import require_non_empty, require_positive_int
from ..core.context import RequestContext
from ..core.enums import ChangeStatus, ChangeType, NotificationType
from ..core.exceptions import NotFoundError, ValidationError
from ..courses.model import Course
from ..courses.repository import CourseRepository
from ..courses.schedule import single_slot
from ..notifications.service import NotificationService
from ..storage.receipts import ReceiptStorage, Upload, store_receipts
from ..students.model import Student
from ..students.repository import StudentRepository
from ..students.service import StudentService
from .model import ApplicationChange, ChangeOutcome, ChangePayload, NewChange
from .repository import ChangeRepository

logger = logging.getLogger(__name__)


class ChangeRequestService:
    """Renewals and course-adds for enrolled students.

    Admins apply the change at once; staff file a pending request that goes
    through the review queue.
    """

    def __init__(
        self,
        changes: ChangeRepository,
        students: StudentRepository,
        courses: CourseRepository,
        enrollment: StudentService,
        storage: ReceiptStorage,
        notifications: NotificationService,
    ):
        self._changes = changes
        self._students = students
        self._courses = courses
        self._enrollment = enrollment
        self._storage = storage
        self._notifications = notifications

    def _student(self, student_id: int) -> Student:
        student = self._students.get_by_id(int(student_id))
        if not student:
            raise NotFoundError("Student not found")
        return student

    def _course(self, course_id: int) -> Course:
        course = self._courses.get_by_id(int(course_id))
        if not course:
            raise NotFoundError("Course not found")
        return course

    def request_renewal(
        self,
        ctx: RequestContext,
        *,
        student_id: int,
        course_id: int,
        hours: int,
        receipt: Optional[Upload],
        now: Optional[datetime] = None,
    ) -> ChangeOutcome:
        ctx.require_staff()
        hours = require_positive_int(hours, "Hours")
        if receipt is None:
            raise ValidationError("A receipt is required")
        student = self._student(student_id)
        course = self._course(course_id)
        if not student.schedule.enrolled_in(course.course_id):
            raise ValidationError(f"Student is not enrolled in {course.name}")

        now = now or now_local()
        urls = store_receipts(self._storage, [receipt], now=now)
        payload = ChangePayload(hours={course.course_id: hours}, receipt_urls=tuple(urls))
        return self._submit(ctx, student, ChangeType.RENEWAL, payload, now)

    def request_course_add(
        self,
        ctx: RequestContext,
        *,
        student_id: int,
        course_id: int,
        day: str,
        time: str,
        hours: int,
        receipt: Optional[Upload],
        now: Optional[datetime] = None,
    ) -> ChangeOutcome:
        ctx.require_staff()
        hours = require_positive_int(hours, "Hours")
        day = require_non_empty(day, "Day")
        time = require_non_empty(time, "Time")
        if receipt is None:
            raise ValidationError("A receipt is required")
        student = self._student(student_id)
        course = self._course(course_id)

        slot = single_slot(course.course_id, day, time)
        slot.validate({course.course_id: course})
        if student.schedule.has_slot(course.course_id, day, time):
            raise ValidationError(f"Student already has {course.name} on {day} at {time}")

        now = now or now_local()
        urls = store_receipts(self._storage, [receipt], now=now)
        payload = ChangePayload(hours={course.course_id: hours}, schedule=slot, receipt_urls=tuple(urls))
        return self._submit(ctx, student, ChangeType.EDIT, payload, now)

    def _submit(
        self,
        ctx: RequestContext,
        student: Student,
        change_type: ChangeType,
        payload: ChangePayload,
        now: datetime,
    ) -> ChangeOutcome:
        if ctx.is_operator:
            self._apply(student.student_id, change_type, payload)
            change_id = self._changes.create(
                NewChange(
                    student_id=student.student_id,
                    change_type=change_type,
                    payload=payload,
                    requested_by=ctx.user_id,
                    status=ChangeStatus.APPROVED,
                    reviewed_by=ctx.user_id,
                    reviewed_at=now,
                )
            )
            logger.info("%s applied to student %s by %s", change_type.value, student.student_id, ctx.user_id)
            return ChangeOutcome(change_id=change_id, applied=True)

        change_id = self._changes.create(
            NewChange(
                student_id=student.student_id,
                change_type=change_type,
                payload=payload,
                requested_by=ctx.user_id,
            )
        )
        self._notifications.notify(
            NotificationType.EDIT_REQUEST,
            student_id=student.student_id,
            payload={"change_id": change_id, "type": change_type.value, "name": student.identity.display_name},
        )
        logger.info("%s request %s filed for student %s", change_type.value, change_id, student.student_id)
        return ChangeOutcome(change_id=change_id, applied=False)

    def _apply(self, student_id: int, change_type: ChangeType, payload: ChangePayload) -> None:
        if change_type == ChangeType.RENEWAL:
            self._enrollment.apply_enrollment_change(
                student_id=student_id,
                schedule_delta=payload.schedule,
                added_hours=payload.hours,
                receipt_urls=payload.receipt_urls,
            )
        else:
            self._enrollment.apply_enrollment_change(
                student_id=student_id,
                schedule_delta=payload.schedule,
                added_hours={},
                set_limits=payload.hours,
                receipt_urls=payload.receipt_urls,
            )

    def list_changes(
        self,
        ctx: RequestContext,
        *,
        status: Optional[ChangeStatus] = None,
        student_id: Optional[int] = None,
    ) -> Sequence[ApplicationChange]:
        ctx.require_staff()
        return self._changes.list_all(status=status, student_id=student_id)

    def decide(
        self,
        ctx: RequestContext,
        change_id: int,
        approve: bool,
        *,
        now: Optional[datetime] = None,
    ) -> bool:
        """Approve (merge into the student) or reject one pending change.

        Returns False when the change was already decided.
        """

        ctx.require_admin()
        change = self._changes.get_by_id(int(change_id))
        if not change:
            raise NotFoundError("Change request not found")
        if change.status != ChangeStatus.PENDING:
            return False

        if approve:
            self._apply(change.student_id, change.change_type, change.payload)
        status = ChangeStatus.APPROVED if approve else ChangeStatus.REJECTED
        self._changes.set_status(
            change_id=change.change_id,
            status=status,
            reviewed_by=ctx.user_id,
            reviewed_at=now or now_local(),
        )
        logger.info("Change %s -> %s by %s", change.change_id, status.value, ctx.user_id)
        return True
