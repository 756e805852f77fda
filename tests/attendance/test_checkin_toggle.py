from __future__ import annotations

from datetime import date

import pytest

from src.school_admin.school_admin.core.enums import CheckinState, NotificationType
from src.school_admin.school_admin.core.exceptions import AuthorizationError, LimitReachedError, ValidationError


def _approved(repos, student_id, course_id, day):
    return repos.attendance.create(student_id=student_id, course_id=course_id, attended_on=day, approved_by=1)


def test_hours_used_counts_only_approved_rows(container, repos, make_student):
    s = make_student(limits={1: 5})
    _approved(repos, s.student_id, 1, date(2026, 2, 23))
    _approved(repos, s.student_id, 1, date(2026, 2, 24))
    repos.attendance.create(student_id=s.student_id, course_id=None, attended_on=date(2026, 2, 25), approved_by=None)

    svc = container.attendance_service
    assert svc.hours_used(s.student_id, 1) == 2
    assert svc.hours_left(s, 1) == 3
    [usage] = svc.hours_for(s)
    assert (usage.used, usage.left, usage.status) == (2, 3, "ongoing")


def test_toggle_on_then_off_leaves_no_rows(container, repos, make_student, staff_ctx, fixed_now):
    s = make_student()
    _approved(repos, s.student_id, 1, date(2026, 2, 23))
    before = dict(repos.attendance.items)

    on = container.attendance_service.toggle_checkin(staff_ctx, student_id=s.student_id, course_id=1, now=fixed_now)
    assert on.state == CheckinState.PRESENT
    assert on.hours.used == 2
    today_rows = [r for r in repos.attendance.items.values() if r.attended_on == fixed_now.date()]
    assert len(today_rows) == 1
    assert today_rows[0].approved_by == staff_ctx.user_id

    off = container.attendance_service.toggle_checkin(staff_ctx, student_id=s.student_id, course_id=1, now=fixed_now)
    assert off.state == CheckinState.ABSENT
    assert repos.attendance.items == before


def test_two_hour_package_scenario(container, repos, make_student, staff_ctx, fixed_now):
    s = make_student(limits={1: 2})
    first = _approved(repos, s.student_id, 1, date(2026, 2, 23))
    _approved(repos, s.student_id, 1, date(2026, 2, 25))
    svc = container.attendance_service

    with pytest.raises(LimitReachedError):
        svc.toggle_checkin(staff_ctx, student_id=s.student_id, course_id=1, now=fixed_now)
    assert len(repos.attendance.items) == 2

    repos.attendance.delete(first)
    assert svc.hours_left(s, 1) == 1

    result = svc.toggle_checkin(staff_ctx, student_id=s.student_id, course_id=1, now=fixed_now)
    assert result.state == CheckinState.PRESENT
    assert result.hours.left == 0
    assert result.hours.status == "renewal_needed"


def test_last_hour_creates_course_limit_notification(container, repos, make_student, staff_ctx, fixed_now):
    s = make_student(limits={1: 1})

    container.attendance_service.toggle_checkin(staff_ctx, student_id=s.student_id, course_id=1, now=fixed_now)

    [n] = repos.notifications.of_type(NotificationType.COURSE_LIMIT)
    assert n.student_id == s.student_id
    assert n.payload["course_id"] == 1


def test_zero_limit_means_unlimited(container, repos, make_student, staff_ctx, fixed_now):
    s = make_student(limits={1: 0})
    for d in (date(2026, 2, 2), date(2026, 2, 9), date(2026, 2, 16)):
        _approved(repos, s.student_id, 1, d)

    result = container.attendance_service.toggle_checkin(staff_ctx, student_id=s.student_id, course_id=1, now=fixed_now)
    assert result.state == CheckinState.PRESENT
    assert not repos.notifications.of_type(NotificationType.COURSE_LIMIT)


def test_toggle_refuses_course_not_enrolled(container, make_student, staff_ctx, fixed_now):
    s = make_student()
    with pytest.raises(ValidationError):
        container.attendance_service.toggle_checkin(staff_ctx, student_id=s.student_id, course_id=2, now=fixed_now)


def test_toggle_refuses_cancelled_course(container, make_student, staff_ctx, fixed_now):
    s = make_student()
    container.student_service.cancel_course(staff_ctx, student_id=s.student_id, course_id=1, now=fixed_now)
    with pytest.raises(ValidationError):
        container.attendance_service.toggle_checkin(staff_ctx, student_id=s.student_id, course_id=1, now=fixed_now)


def test_uncheck_only_removes_todays_row(container, repos, make_student, staff_ctx, fixed_now):
    s = make_student()
    earlier = _approved(repos, s.student_id, 1, date(2026, 2, 23))
    svc = container.attendance_service

    svc.toggle_checkin(staff_ctx, student_id=s.student_id, course_id=1, now=fixed_now)
    svc.toggle_checkin(staff_ctx, student_id=s.student_id, course_id=1, now=fixed_now)

    assert list(repos.attendance.items) == [earlier]


def test_public_caller_cannot_toggle(container, make_student, public_ctx, fixed_now):
    s = make_student()
    with pytest.raises(AuthorizationError):
        container.attendance_service.toggle_checkin(public_ctx, student_id=s.student_id, course_id=1, now=fixed_now)


def test_course_board_marks_present_students(container, make_student, staff_ctx, fixed_now):
    a = make_student(nick="A")
    b = make_student(nick="B")
    make_student(nick="C", courses={2: {"Sat": ["09:00"]}}, limits={2: 4})
    container.attendance_service.toggle_checkin(staff_ctx, student_id=a.student_id, course_id=1, now=fixed_now)

    board = container.attendance_service.course_board(staff_ctx, course_id=1, day="Mon", on=fixed_now.date())

    assert {(e.student.student_id, e.present) for e in board} == {(a.student_id, True), (b.student_id, False)}
