from __future__ import annotations

import pytest

from src.school_admin.school_admin.core.enums import ApplicationStatus, ChangeStatus
from src.school_admin.school_admin.core.exceptions import AuthorizationError, ValidationError
from src.school_admin.school_admin.courses.schedule import EnrollmentSchedule
from src.school_admin.school_admin.storage.receipts import Upload
from src.school_admin.school_admin.students.model import ApplicantIdentity

RECEIPT = Upload(filename="r.jpg", content_type="image/jpeg", data=b"jpg")


def _apply(container, ctx, now, nick):
    return container.admissions_service.submit(
        ctx,
        identity=ApplicantIdentity(nick_name=nick),
        schedule=EnrollmentSchedule.from_mapping({1: {"Mon": ["13:00-14:00"]}}),
        course_limits={1: 6},
        receipts=[RECEIPT],
        now=now,
    ).id


@pytest.fixture
def queue(container, make_student, staff_ctx, fixed_now):
    s = make_student(limits={1: 2})
    apps = [_apply(container, staff_ctx, fixed_now, n) for n in ("A", "B", "C")]
    renewal = container.change_service.request_renewal(
        staff_ctx, student_id=s.student_id, course_id=1, hours=4, receipt=RECEIPT, now=fixed_now
    ).change_id
    edit = container.change_service.request_course_add(
        staff_ctx, student_id=s.student_id, course_id=2, day="Sat", time="09:00", hours=3, receipt=RECEIPT, now=fixed_now
    ).change_id
    return {"student": s, "apps": apps, "renewal": renewal, "edit": edit}


def test_list_pending_groups_oldest_first(container, staff_ctx, queue):
    pending = container.review_service.list_pending(staff_ctx)

    assert [a.application_id for a in pending.new_applications] == queue["apps"]
    assert [c.change_id for c in pending.renewals] == [queue["renewal"]]
    assert [c.change_id for c in pending.course_edits] == [queue["edit"]]
    assert container.review_service.pending_count(staff_ctx) == 5


def test_bulk_approve_materialises_students(container, repos, admin_ctx, queue, fixed_now):
    a, b, _ = queue["apps"]

    outcome = container.review_service.approve_applications(admin_ctx, [a, b, 999], now=fixed_now)

    assert outcome.processed == [a, b]
    assert outcome.skipped == [999]
    approved = [repos.applications.get_by_id(i) for i in (a, b)]
    assert all(x.status == ApplicationStatus.APPROVED for x in approved)
    assert {repos.students.get_by_id(x.student_id).identity.nick_name for x in approved} == {"A", "B"}


def test_bulk_reject_keeps_rows(container, repos, admin_ctx, queue, fixed_now):
    a, b, c = queue["apps"]

    container.review_service.reject_applications(admin_ctx, [c], now=fixed_now)
    again = container.review_service.approve_applications(admin_ctx, [c], now=fixed_now)

    assert repos.applications.get_by_id(c).status == ApplicationStatus.REJECTED
    assert again.skipped == [c]
    assert len(repos.applications.items) == 3


def test_approving_changes_merges_into_student(container, repos, admin_ctx, queue, fixed_now):
    sid = queue["student"].student_id

    outcome = container.review_service.approve_changes(admin_ctx, [queue["renewal"], queue["edit"]], now=fixed_now)

    assert outcome.processed == [queue["renewal"], queue["edit"]]
    student = repos.students.get_by_id(sid)
    assert student.course_limits == {1: 6, 2: 3}
    assert student.schedule.has_slot(2, "Sat")
    assert repos.changes.get_by_id(queue["renewal"]).reviewed_at == fixed_now


def test_rejecting_changes_leaves_student_untouched(container, repos, admin_ctx, queue, fixed_now):
    container.review_service.reject_changes(admin_ctx, [queue["renewal"]], now=fixed_now)

    assert repos.changes.get_by_id(queue["renewal"]).status == ChangeStatus.REJECTED
    assert repos.students.get_by_id(queue["student"].student_id).course_limits == {1: 2}


def test_decisions_are_admin_only(container, staff_ctx, queue):
    with pytest.raises(AuthorizationError):
        container.review_service.approve_applications(staff_ctx, queue["apps"])


def test_empty_selection_is_rejected(container, admin_ctx, queue):
    with pytest.raises(ValidationError):
        container.review_service.reject_changes(admin_ctx, [])
