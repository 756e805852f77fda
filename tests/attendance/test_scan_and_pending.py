from __future__ import annotations

import io

import pytest

from src.school_admin.school_admin.core.exceptions import (
    DuplicateCheckinError,
    DuplicateScanError,
    LimitReachedError,
    NotFoundError,
    UnknownCodeError,
    ValidationError,
)
from src.school_admin.school_admin.core.enums import NotificationType


@pytest.fixture
def two_course_student(make_student):
    return make_student(
        nick="Ploy",
        courses={1: {"Mon": ["13:00-14:00"]}, 2: {"Sat": ["09:00"]}},
        limits={1: 4, 2: 4},
        qr_token="qr-ploy",
    )


def test_scan_creates_one_pending_row(container, repos, two_course_student, staff_ctx, fixed_now):
    pending = container.attendance_service.scan(staff_ctx, "qr-ploy", now=fixed_now)

    [row] = repos.attendance.items.values()
    assert row.attendance_id == pending.record.attendance_id
    assert row.course_id is None
    assert row.approved_by is None
    assert row.attended_on == fixed_now.date()
    assert repos.notifications.of_type(NotificationType.PENDING_CHECKIN)


def test_second_scan_same_day_is_rejected(container, repos, two_course_student, staff_ctx, fixed_now):
    container.attendance_service.scan(staff_ctx, "qr-ploy", now=fixed_now)
    with pytest.raises(DuplicateScanError):
        container.attendance_service.scan(staff_ctx, "qr-ploy", now=fixed_now)
    assert len(repos.attendance.items) == 1


def test_scan_after_manual_checkin_is_a_duplicate(container, repos, two_course_student, staff_ctx, fixed_now):
    container.attendance_service.toggle_checkin(staff_ctx, student_id=two_course_student.student_id, course_id=1, now=fixed_now)
    with pytest.raises(DuplicateScanError):
        container.attendance_service.scan(staff_ctx, "qr-ploy", now=fixed_now)
    assert len(repos.attendance.items) == 1


def test_unknown_and_empty_codes(container, staff_ctx, fixed_now):
    with pytest.raises(UnknownCodeError):
        container.attendance_service.scan(staff_ctx, "nope", now=fixed_now)
    with pytest.raises(ValidationError):
        container.attendance_service.scan(staff_ctx, "   ", now=fixed_now)


def test_approve_pending_into_two_courses(container, repos, two_course_student, staff_ctx, fixed_now):
    svc = container.attendance_service
    pending = svc.scan(staff_ctx, "qr-ploy", now=fixed_now)

    ids = svc.approve_pending(staff_ctx, attendance_id=pending.record.attendance_id, course_ids=[1, 2, 1])

    assert len(ids) == 2
    assert ids[0] == pending.record.attendance_id
    rows = [repos.attendance.items[i] for i in ids]
    assert [r.course_id for r in rows] == [1, 2]
    assert all(r.approved_by == staff_ctx.user_id for r in rows)
    assert all(r.attended_on == fixed_now.date() for r in rows)
    assert svc.list_pending(staff_ctx) == []
    assert svc.hours_used(two_course_student.student_id, 2) == 1


def test_approve_pending_rejects_course_outside_enrollment(container, repos, make_student, staff_ctx, fixed_now):
    make_student(qr_token="qr-solo")
    svc = container.attendance_service
    pending = svc.scan(staff_ctx, "qr-solo", now=fixed_now)

    with pytest.raises(ValidationError):
        svc.approve_pending(staff_ctx, attendance_id=pending.record.attendance_id, course_ids=[1, 2])
    assert repos.attendance.items[pending.record.attendance_id].is_pending


def test_approve_pending_needs_a_selection(container, two_course_student, staff_ctx, fixed_now):
    pending = container.attendance_service.scan(staff_ctx, "qr-ploy", now=fixed_now)
    with pytest.raises(ValidationError):
        container.attendance_service.approve_pending(staff_ctx, attendance_id=pending.record.attendance_id, course_ids=[])


def test_approve_pending_respects_hour_limit(container, repos, make_student, staff_ctx, fixed_now):
    from datetime import date

    s = make_student(limits={1: 1}, qr_token="qr-full")
    repos.attendance.create(student_id=s.student_id, course_id=1, attended_on=date(2026, 2, 23), approved_by=1)
    pending = container.attendance_service.scan(staff_ctx, "qr-full", now=fixed_now)

    with pytest.raises(LimitReachedError):
        container.attendance_service.approve_pending(staff_ctx, attendance_id=pending.record.attendance_id, course_ids=[1])


def test_approve_pending_refuses_course_already_checked_in(container, repos, two_course_student, staff_ctx, fixed_now):
    svc = container.attendance_service
    pending = svc.scan(staff_ctx, "qr-ploy", now=fixed_now)
    repos.attendance.create(
        student_id=two_course_student.student_id,
        course_id=1,
        attended_on=fixed_now.date(),
        approved_by=1,
    )

    with pytest.raises(DuplicateCheckinError):
        svc.approve_pending(staff_ctx, attendance_id=pending.record.attendance_id, course_ids=[1])


def test_discard_pending_removes_the_row(container, repos, two_course_student, staff_ctx, fixed_now):
    svc = container.attendance_service
    pending = svc.scan(staff_ctx, "qr-ploy", now=fixed_now)

    svc.discard_pending(staff_ctx, pending.record.attendance_id)

    assert repos.attendance.items == {}
    with pytest.raises(NotFoundError):
        svc.discard_pending(staff_ctx, pending.record.attendance_id)


def test_qr_png_round_trip(container, two_course_student, staff_ctx, fixed_now):
    png = container.attendance_service.qr_png(staff_ctx, two_course_student.student_id)
    assert png.startswith(b"\x89PNG")

    pytest.importorskip("pyzbar.pyzbar")
    pending = container.attendance_service.decode_qr_image(staff_ctx, io.BytesIO(png), now=fixed_now)
    assert pending.student.student_id == two_course_student.student_id
