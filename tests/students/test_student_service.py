from __future__ import annotations

from datetime import date

import pytest

from src.school_admin.school_admin.core.exceptions import (
    AuthorizationError,
    CapacityReachedError,
    NotFoundError,
    ValidationError,
)
from src.school_admin.school_admin.courses.model import Course
from src.school_admin.school_admin.courses.schedule import EnrollmentSchedule
from src.school_admin.school_admin.students.model import ApplicantIdentity


def test_profile_reports_hours_per_course(container, repos, make_student, staff_ctx):
    s = make_student(courses={1: {"Mon": ["13:00-14:00"]}, 2: {"Sat": ["09:00"]}}, limits={1: 1, 2: 3})
    repos.attendance.create(student_id=s.student_id, course_id=1, attended_on=date(2026, 2, 23), approved_by=1)

    profile = container.student_service.get_profile(staff_ctx, s.student_id)

    by_course = {h.course_id: h for h in profile.hours}
    assert by_course[1].status == "renewal_needed"
    assert (by_course[2].left, by_course[2].status) == (3, "ongoing")
    assert profile.to_dict()["student"]["nick_name"] == "Mint"


def test_move_day_and_replace_time(container, repos, make_student, staff_ctx):
    s = make_student(courses={1: {"Mon": ["13:00-14:00"], "Wed": ["10:00-11:00"]}})
    svc = container.student_service

    moved = svc.move_day(staff_ctx, student_id=s.student_id, course_id=1, old_day="Mon", new_day="Wed")
    assert dict(moved.schedule.courses[1]) == {"Wed": ("10:00-11:00", "13:00-14:00")}

    replaced = svc.replace_time(
        staff_ctx, student_id=s.student_id, course_id=1, day="Wed", old_time="13:00-14:00", new_time="10:00-11:00"
    )
    assert replaced.schedule.courses[1]["Wed"] == ("10:00-11:00",)

    with pytest.raises(ValidationError):
        svc.move_day(staff_ctx, student_id=s.student_id, course_id=1, old_day="Wed", new_day="Sat")


def test_cancel_course_records_actor(container, make_student, staff_ctx, fixed_now):
    s = make_student()

    student = container.student_service.cancel_course(staff_ctx, student_id=s.student_id, course_id=1, now=fixed_now)

    assert student.cancelled_at == {1: fixed_now}
    assert student.cancelled_by == {1: staff_ctx.user_id}
    assert student.active_course_ids() == ()


def test_delete_student_is_admin_only(container, repos, make_student, staff_ctx, admin_ctx):
    s = make_student()
    with pytest.raises(AuthorizationError):
        container.student_service.delete_student(staff_ctx, s.student_id)

    container.student_service.delete_student(admin_ctx, s.student_id)
    assert repos.students.items == {}
    with pytest.raises(NotFoundError):
        container.student_service.get_profile(admin_ctx, s.student_id)


def test_enroll_respects_course_capacity(container, repos, make_student, fixed_now):
    repos.courses.items[3] = Course(course_id=3, name="Ballet", weekdays=("Sun",), capacity=1)
    make_student(nick="First", courses={3: {"Sun": ["09:00"]}}, limits={3: 4})

    with pytest.raises(CapacityReachedError):
        container.student_service.enroll(
            identity=ApplicantIdentity(nick_name="Second"),
            schedule=EnrollmentSchedule.from_mapping({3: {"Sun": ["09:00"]}}),
            course_limits={3: 4},
            receipt_urls=(),
            now=fixed_now,
        )


def test_cancelled_seat_frees_course_capacity(container, repos, make_student, staff_ctx, fixed_now):
    repos.courses.items[3] = Course(course_id=3, name="Ballet", weekdays=("Sun",), capacity=1)
    first = make_student(nick="First", courses={3: {"Sun": ["09:00"]}}, limits={3: 4})
    container.student_service.cancel_course(staff_ctx, student_id=first.student_id, course_id=3, now=fixed_now)

    assert repos.students.count_enrolled(3) == 0
    second_id = container.student_service.enroll(
        identity=ApplicantIdentity(nick_name="Second"),
        schedule=EnrollmentSchedule.from_mapping({3: {"Sun": ["09:00"]}}),
        course_limits={3: 4},
        receipt_urls=(),
        now=fixed_now,
    )
    assert repos.students.get_by_id(second_id).active_course_ids() == (3,)
