from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import BinaryIO, Iterable, Optional, Sequence

from ..common.datetime_utils import now_local
from ..common.validators import require_ids
from ..core.context import RequestContext
from ..core.enums import CheckinState, NotificationType, StudentStatus
from ..core.exceptions import (
    DuplicateCheckinError,
    DuplicateScanError,
    LimitReachedError,
    NotFoundError,
    UnknownCodeError,
    ValidationError,
)
from ..courses.model import Course
from ..courses.repository import CourseRepository
from ..notifications.service import NotificationService
from ..students.model import Student
from ..students.repository import StudentRepository
from . import qr
from .model import AttendanceRecord, CheckinResult, HoursUsage, usage_from_records
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BoardEntry:
    """One row of the per-course attendance board."""

    student: Student
    present: bool
    hours: HoursUsage

    def to_dict(self) -> dict:
        return {
            "student_id": self.student.student_id,
            "name": self.student.identity.display_name,
            "nick_name": self.student.identity.nick_name,
            "present": self.present,
            "hours": self.hours.to_dict(),
        }


@dataclass(frozen=True)
class PendingCheckin:
    record: AttendanceRecord
    student: Student

    def to_dict(self) -> dict:
        return {
            **self.record.to_dict(),
            "name": self.student.identity.display_name,
            "courses": list(self.student.active_course_ids()),
        }


class AttendanceService:
    """Manual check-in toggle, QR scan and pending approval.

    Only approved rows (approved_by set) count toward used hours.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        students: StudentRepository,
        courses: CourseRepository,
        notifications: NotificationService,
        *,
        notify_pending_scans: bool = True,
    ):
        self._attendance = attendance
        self._students = students
        self._courses = courses
        self._notifications = notifications
        self._notify_pending_scans = notify_pending_scans

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

    @staticmethod
    def _approver(ctx: RequestContext) -> int:
        if ctx.user_id is None:
            raise ValidationError("Your profile is missing; sign in again")
        return int(ctx.user_id)

    # ===== HOURS =====

    def hours_used(self, student_id: int, course_id: int) -> int:
        return self._attendance.count_approved(int(student_id), int(course_id))

    def hours_left(self, student: Student, course_id: int) -> int:
        return self.usage(student, course_id).left

    def usage(self, student: Student, course_id: int) -> HoursUsage:
        return HoursUsage(
            course_id=int(course_id),
            used=self.hours_used(student.student_id, course_id),
            purchased=student.limit_for(course_id),
        )

    def hours_for(self, student: Student) -> list[HoursUsage]:
        records = self._attendance.list_for_student(student.student_id)
        return usage_from_records(student.course_limits, student.schedule.course_ids, records)

    def _require_hours(self, student: Student, course: Course) -> HoursUsage:
        usage = self.usage(student, course.course_id)
        if usage.exhausted:
            logger.warning(
                "Check-in refused: student %s used %d/%d hours of %s",
                student.student_id,
                usage.used,
                usage.purchased,
                course.name,
            )
            raise LimitReachedError(f"{student.identity.display_name} has used all purchased hours for {course.name}")
        return usage

    def _after_checkin(self, student: Student, course: Course, usage: HoursUsage) -> HoursUsage:
        """usage is from before the insert; returns the updated one."""

        after = HoursUsage(course_id=usage.course_id, used=usage.used + 1, purchased=usage.purchased)
        if after.exhausted:
            self._notifications.notify(
                NotificationType.COURSE_LIMIT,
                student_id=student.student_id,
                payload={"course_id": course.course_id, "course": course.name, "name": student.identity.display_name},
            )
        return after

    # ===== MANUAL TOGGLE =====

    def _records_on(self, student_id: int, day: date) -> list[AttendanceRecord]:
        return [r for r in self._attendance.list_for_student(student_id) if r.attended_on == day]

    def toggle_checkin(
        self,
        ctx: RequestContext,
        *,
        student_id: int,
        course_id: int,
        now: Optional[datetime] = None,
    ) -> CheckinResult:
        ctx.require_staff()
        approver = self._approver(ctx)
        today = (now or now_local()).date()
        student = self._student(student_id)
        course = self._course(course_id)

        present = [
            r for r in self._records_on(student.student_id, today)
            if r.course_id == course.course_id and not r.is_pending
        ]
        if present:
            for r in present:
                self._attendance.delete(r.attendance_id)
            logger.info("Check-in removed: student %s course %s on %s", student.student_id, course.course_id, today)
            return CheckinResult(
                student_id=student.student_id,
                course_id=course.course_id,
                state=CheckinState.ABSENT,
                hours=self.usage(student, course.course_id),
            )

        if not student.schedule.enrolled_in(course.course_id):
            raise ValidationError(f"{student.identity.display_name} is not enrolled in {course.name}")
        if student.is_cancelled(course.course_id):
            raise ValidationError(f"{course.name} was cancelled for {student.identity.display_name}")

        usage = self._require_hours(student, course)
        self._attendance.create(
            student_id=student.student_id,
            course_id=course.course_id,
            attended_on=today,
            approved_by=approver,
        )
        logger.info("Checked in: student %s course %s on %s by %s", student.student_id, course.course_id, today, approver)
        return CheckinResult(
            student_id=student.student_id,
            course_id=course.course_id,
            state=CheckinState.PRESENT,
            hours=self._after_checkin(student, course, usage),
        )

    # ===== QR =====

    def scan(self, ctx: RequestContext, code: str, *, now: Optional[datetime] = None) -> PendingCheckin:
        ctx.require_staff()
        code = (code or "").strip()
        if not code:
            raise ValidationError("QR code is empty")

        student = self._students.get_by_qr_token(code)
        if not student:
            logger.warning("Unknown QR code scanned")
            raise UnknownCodeError("Unrecognised QR code")

        today = (now or now_local()).date()
        if self._records_on(student.student_id, today):
            raise DuplicateScanError(f"{student.identity.display_name} is already checked in today")

        try:
            attendance_id = self._attendance.create(
                student_id=student.student_id,
                course_id=None,
                attended_on=today,
                approved_by=None,
            )
        except DuplicateCheckinError:
            raise DuplicateScanError(f"{student.identity.display_name} is already checked in today")

        record = AttendanceRecord(
            attendance_id=attendance_id,
            student_id=student.student_id,
            course_id=None,
            attended_on=today,
        )
        if self._notify_pending_scans:
            self._notifications.notify(
                NotificationType.PENDING_CHECKIN,
                student_id=student.student_id,
                payload={"attendance_id": attendance_id, "name": student.identity.display_name},
            )
        logger.info("QR scan: pending check-in %s for student %s", attendance_id, student.student_id)
        return PendingCheckin(record=record, student=student)

    def decode_qr_image(self, ctx: RequestContext, stream: BinaryIO, *, now: Optional[datetime] = None) -> PendingCheckin:
        ctx.require_staff()
        return self.scan(ctx, qr.decode_image(stream), now=now)

    def qr_png(self, ctx: RequestContext, student_id: int) -> bytes:
        ctx.require_staff()
        return qr.make_png(self._student(student_id).qr_token)

    # ===== BOARD =====

    def course_board(
        self,
        ctx: RequestContext,
        *,
        course_id: int,
        day: Optional[str] = None,
        on: Optional[date] = None,
    ) -> list[BoardEntry]:
        ctx.require_staff()
        course = self._course(course_id)
        on = on or now_local().date()
        present_ids = {
            r.student_id
            for r in self._attendance.list_for_date(on)
            if r.course_id == course.course_id and not r.is_pending
        }

        out: list[BoardEntry] = []
        for s in self._students.list_all(status=StudentStatus.ACTIVE):
            if not s.schedule.has_slot(course.course_id, day) or s.is_cancelled(course.course_id):
                continue
            out.append(
                BoardEntry(
                    student=s,
                    present=s.student_id in present_ids,
                    hours=self.usage(s, course.course_id),
                )
            )
        return out

    # ===== PENDING APPROVAL =====

    def list_pending(self, ctx: RequestContext) -> list[PendingCheckin]:
        ctx.require_staff()
        out: list[PendingCheckin] = []
        for r in self._attendance.list_pending():
            student = self._students.get_by_id(r.student_id)
            if student:
                out.append(PendingCheckin(record=r, student=student))
        return out

    def _pending(self, attendance_id: int) -> AttendanceRecord:
        record = self._attendance.get_by_id(int(attendance_id))
        if not record or not record.is_pending:
            raise NotFoundError("Pending check-in not found")
        return record

    def approve_pending(
        self,
        ctx: RequestContext,
        *,
        attendance_id: int,
        course_ids: Iterable[int],
    ) -> list[int]:
        """Turn one scan into approved attendance for each selected course.

        The first course goes onto the scanned row; the rest get new rows with
        the same date and approver.
        """

        ctx.require_staff()
        approver = self._approver(ctx)
        selected = require_ids(course_ids, "Courses")
        if not selected:
            raise ValidationError("Select at least one course")

        record = self._pending(attendance_id)
        student = self._student(record.student_id)
        active = set(student.active_course_ids())
        taken = {
            r.course_id for r in self._records_on(student.student_id, record.attended_on)
            if r.course_id is not None
        }

        usages: list[tuple[Course, HoursUsage]] = []
        for cid in selected:
            course = self._course(cid)
            if cid not in active:
                raise ValidationError(f"{student.identity.display_name} is not enrolled in {course.name}")
            if cid in taken:
                raise DuplicateCheckinError(f"Already checked in to {course.name} on {record.attended_on}")
            usages.append((course, self._require_hours(student, course)))

        ids = self._attendance.approve_pending(
            attendance_id=record.attendance_id,
            course_ids=selected,
            approved_by=approver,
        )
        if not ids:
            raise NotFoundError("Pending check-in not found")

        for course, usage in usages:
            self._after_checkin(student, course, usage)
        logger.info("Pending check-in %s approved for courses %s by %s", record.attendance_id, selected, approver)
        return ids

    def discard_pending(self, ctx: RequestContext, attendance_id: int) -> None:
        ctx.require_staff()
        record = self._pending(attendance_id)
        self._attendance.delete(record.attendance_id)
        logger.info("Pending check-in %s discarded", record.attendance_id)

    def history(self, ctx: RequestContext, student_id: int) -> Sequence[AttendanceRecord]:
        ctx.require_staff()
        return self._attendance.list_for_student(self._student(student_id).student_id)
