from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Optional

import pytest

from src.school_admin.school_admin.admissions.model import Application, ApplicationLink, NewApplication
from src.school_admin.school_admin.attendance.model import AttendanceRecord
from src.school_admin.school_admin.changes.model import ApplicationChange, NewChange
from src.school_admin.school_admin.container import Repositories, build_services
from src.school_admin.school_admin.core.context import RequestContext
from src.school_admin.school_admin.core.enums import ApplicationStatus, Role
from src.school_admin.school_admin.core.exceptions import DuplicateCheckinError, StorageError
from src.school_admin.school_admin.courses.model import Course, CourseDraft
from src.school_admin.school_admin.courses.schedule import EnrollmentSchedule
from src.school_admin.school_admin.notifications.hub import NotificationHub
from src.school_admin.school_admin.notifications.model import Notification
from src.school_admin.school_admin.students.model import ApplicantIdentity, NewStudent, Student
from src.school_admin.school_admin.users.model import User

FIXED_NOW = datetime(2026, 3, 2, 13, 5, 0)


class InMemoryCourses:
    def __init__(self, courses=()):
        self.items: dict[int, Course] = {c.course_id: c for c in courses}

    def list_all(self):
        return sorted(self.items.values(), key=lambda c: c.name)

    def get_by_id(self, course_id):
        return self.items.get(int(course_id))

    def create(self, draft: CourseDraft) -> int:
        cid = max(self.items, default=0) + 1
        self.items[cid] = Course(cid, draft.name, draft.weekdays, draft.times, draft.capacity)
        return cid

    def update(self, draft: CourseDraft) -> bool:
        if draft.course_id not in self.items:
            return False
        self.items[draft.course_id] = Course(draft.course_id, draft.name, draft.weekdays, draft.times, draft.capacity)
        return True

    def delete(self, course_id) -> bool:
        return self.items.pop(int(course_id), None) is not None


class InMemoryStudents:
    def __init__(self):
        self.items: dict[int, Student] = {}
        self._id = 0

    def get_by_id(self, student_id):
        return self.items.get(int(student_id))

    def get_by_qr_token(self, qr_token):
        return next((s for s in self.items.values() if s.qr_token == qr_token), None)

    def list_all(self, *, status=None):
        return [s for s in self.items.values() if status is None or s.status == status]

    def count_enrolled(self, course_id) -> int:
        return sum(
            1
            for s in self.items.values()
            if s.schedule.enrolled_in(course_id) and not s.is_cancelled(course_id)
        )

    def create(self, student: NewStudent) -> int:
        self._id += 1
        self.items[self._id] = Student(
            student_id=self._id,
            identity=student.identity,
            schedule=student.schedule,
            course_limits=dict(student.course_limits),
            qr_token=student.qr_token,
            joined_at=student.joined_at,
            status=student.status,
            receipt_urls=tuple(student.receipt_urls),
        )
        return self._id

    def save_enrollment(self, *, student_id, schedule, course_limits, receipt_urls, status) -> bool:
        s = self.items.get(int(student_id))
        if not s:
            return False
        self.items[s.student_id] = replace(
            s,
            schedule=schedule,
            course_limits=dict(course_limits),
            receipt_urls=tuple(receipt_urls),
            status=status,
        )
        return True

    def save_cancellations(self, *, student_id, cancelled_at, cancelled_by) -> bool:
        s = self.items.get(int(student_id))
        if not s:
            return False
        self.items[s.student_id] = replace(s, cancelled_at=dict(cancelled_at), cancelled_by=dict(cancelled_by))
        return True

    def delete(self, student_id) -> bool:
        return self.items.pop(int(student_id), None) is not None


class InMemoryApplications:
    def __init__(self):
        self.items: dict[int, Application] = {}
        self._id = 0

    def create(self, application: NewApplication) -> int:
        self._id += 1
        self.items[self._id] = Application(
            application_id=self._id,
            identity=application.identity,
            schedule=application.schedule,
            course_limits=dict(application.course_limits),
            receipt_urls=tuple(application.receipt_urls),
            status=ApplicationStatus.PENDING,
            created_at=datetime(2026, 3, 1, 9, self._id % 60),
        )
        return self._id

    def get_by_id(self, application_id):
        return self.items.get(int(application_id))

    def list_all(self, *, status=None, oldest_first=False, limit=500):
        items = [a for a in self.items.values() if status is None or a.status == status]
        items.sort(key=lambda a: (a.created_at, a.application_id), reverse=not oldest_first)
        return items[:limit]

    def count_by_status(self, status) -> int:
        return sum(1 for a in self.items.values() if a.status == status)

    def set_status(self, *, application_id, status, reviewed_by, reviewed_at) -> bool:
        a = self.items.get(int(application_id))
        if not a:
            return False
        self.items[a.application_id] = replace(a, status=status, reviewed_by=reviewed_by, reviewed_at=reviewed_at)
        return True

    def attach_student(self, *, application_id, student_id) -> bool:
        a = self.items.get(int(application_id))
        if not a or a.student_id is not None:
            return False
        self.items[a.application_id] = replace(a, student_id=int(student_id))
        return True


class InMemoryLinks:
    def __init__(self):
        self.items: dict[str, ApplicationLink] = {}

    def get(self, token):
        return self.items.get(token)

    def latest(self, link_type):
        links = [l for l in self.items.values() if l.link_type == link_type]
        return max(links, key=lambda l: l.expires_at, default=None)

    def rotate(self, *, token, link_type, now, expire_at, expires_at, created_by):
        n = 0
        for t, link in list(self.items.items()):
            if link.link_type == link_type and link.expires_at > now:
                self.items[t] = replace(link, expires_at=expire_at)
                n += 1
        link = ApplicationLink(token=token, link_type=link_type, expires_at=expires_at, created_by=created_by)
        self.items[token] = link
        return link, n

    def valid_at(self, now):
        return [l for l in self.items.values() if l.is_valid(now)]


class InMemoryChanges:
    def __init__(self):
        self.items: dict[int, ApplicationChange] = {}
        self._id = 0

    def create(self, change: NewChange) -> int:
        self._id += 1
        self.items[self._id] = ApplicationChange(
            change_id=self._id,
            student_id=change.student_id,
            change_type=change.change_type,
            payload=change.payload,
            status=change.status,
            created_at=datetime(2026, 3, 1, 10, self._id % 60),
            requested_by=change.requested_by,
            reviewed_by=change.reviewed_by,
            reviewed_at=change.reviewed_at,
        )
        return self._id

    def get_by_id(self, change_id):
        return self.items.get(int(change_id))

    def list_all(self, *, status=None, change_type=None, student_id=None, oldest_first=False):
        items = [
            c
            for c in self.items.values()
            if (status is None or c.status == status)
            and (change_type is None or c.change_type == change_type)
            and (student_id is None or c.student_id == int(student_id))
        ]
        items.sort(key=lambda c: (c.created_at, c.change_id), reverse=not oldest_first)
        return items

    def count_by_status(self, status) -> int:
        return sum(1 for c in self.items.values() if c.status == status)

    def set_status(self, *, change_id, status, reviewed_by, reviewed_at) -> bool:
        c = self.items.get(int(change_id))
        if not c:
            return False
        self.items[c.change_id] = replace(c, status=status, reviewed_by=reviewed_by, reviewed_at=reviewed_at)
        return True


class InMemoryAttendance:
    """Mirrors the unique (student_id, attended_on, IFNULL(course_id, 0)) index."""

    def __init__(self):
        self.items: dict[int, AttendanceRecord] = {}
        self._id = 0

    def _key(self, student_id, attended_on, course_id):
        return (int(student_id), attended_on, int(course_id or 0))

    def _taken(self, key, *, ignore=None) -> bool:
        return any(
            self._key(r.student_id, r.attended_on, r.course_id) == key
            for r in self.items.values()
            if r.attendance_id != ignore
        )

    def get_by_id(self, attendance_id):
        return self.items.get(int(attendance_id))

    def list_for_student(self, student_id):
        return [r for r in self.items.values() if r.student_id == int(student_id)]

    def list_for_date(self, attended_on):
        return [r for r in self.items.values() if r.attended_on == attended_on]

    def list_pending(self):
        return [r for r in self.items.values() if r.is_pending]

    def count_approved(self, student_id, course_id) -> int:
        return sum(
            1
            for r in self.items.values()
            if r.student_id == int(student_id) and r.course_id == int(course_id) and not r.is_pending
        )

    def create(self, *, student_id, course_id, attended_on, approved_by) -> int:
        if self._taken(self._key(student_id, attended_on, course_id)):
            raise DuplicateCheckinError("Duplicate check-in")
        self._id += 1
        self.items[self._id] = AttendanceRecord(
            attendance_id=self._id,
            student_id=int(student_id),
            course_id=course_id,
            attended_on=attended_on,
            approved_by=approved_by,
        )
        return self._id

    def approve_pending(self, *, attendance_id, course_ids, approved_by):
        r = self.items.get(int(attendance_id))
        if not r or not r.is_pending:
            return []
        for cid in course_ids:
            if self._taken(self._key(r.student_id, r.attended_on, cid), ignore=r.attendance_id):
                raise DuplicateCheckinError("Duplicate check-in")

        self.items[r.attendance_id] = replace(r, course_id=course_ids[0], approved_by=approved_by)
        ids = [r.attendance_id]
        for cid in course_ids[1:]:
            ids.append(
                self.create(student_id=r.student_id, course_id=cid, attended_on=r.attended_on, approved_by=approved_by)
            )
        return ids

    def delete(self, attendance_id) -> bool:
        return self.items.pop(int(attendance_id), None) is not None


class InMemoryNotifications:
    def __init__(self):
        self.items: list[Notification] = []

    def create(self, *, type, student_id, payload):
        n = Notification(
            notification_id=len(self.items) + 1,
            type=type,
            created_at=FIXED_NOW + timedelta(seconds=len(self.items)),
            student_id=student_id,
            payload=dict(payload),
        )
        self.items.append(n)
        return n

    def list_recent(self, *, limit):
        return list(reversed(self.items))[:limit]

    def count_unread(self) -> int:
        return sum(1 for n in self.items if not n.read)

    def mark_read(self, notification_id) -> bool:
        for i, n in enumerate(self.items):
            if n.notification_id == int(notification_id):
                self.items[i] = replace(n, read=True)
                return True
        return False

    def of_type(self, type):
        return [n for n in self.items if n.type == type]


class InMemoryUsers:
    def __init__(self, users=()):
        self.items: dict[int, User] = {u.user_id: u for u in users}

    def get_by_id(self, user_id) -> Optional[User]:
        return self.items.get(int(user_id))

    def get_by_email(self, email) -> Optional[User]:
        return next((u for u in self.items.values() if u.email == email), None)

    def list_all(self):
        return list(self.items.values())

    def create_user(self, *, email, full_name, password_hash, role) -> int:
        uid = max(self.items, default=0) + 1
        self.items[uid] = User(uid, email, full_name, password_hash, role)
        return uid

    def update_profile(self, user_id, *, full_name=None, password_hash=None) -> bool:
        u = self.items.get(int(user_id))
        if not u:
            return False
        self.items[u.user_id] = replace(
            u,
            full_name=full_name if full_name is not None else u.full_name,
            password_hash=password_hash if password_hash is not None else u.password_hash,
        )
        return True

    def delete_by_id(self, user_id) -> bool:
        return self.items.pop(int(user_id), None) is not None


class InMemoryStorage:
    def __init__(self, *, fail_with: Optional[str] = None):
        self.objects: dict[str, bytes] = {}
        self.fail_with = fail_with

    def put(self, *, name, data, content_type) -> str:
        if self.fail_with:
            raise StorageError(self.fail_with)
        if name in self.objects:
            raise StorageError("The resource already exists")
        self.objects[name] = data
        return f"/receipts/{name}"


PIANO = Course(
    course_id=1,
    name="Piano",
    weekdays=("Mon", "Wed"),
    times={"Mon": ("13:00-14:00", "14:00-15:00"), "Wed": ("10:00-11:00",)},
    capacity=0,
)
ART = Course(course_id=2, name="Art", weekdays=("Sat",), times={}, capacity=0)


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def today(fixed_now) -> date:
    return fixed_now.date()


@pytest.fixture
def admin_ctx() -> RequestContext:
    return RequestContext(user_id=1, role=Role.ADMIN)


@pytest.fixture
def staff_ctx() -> RequestContext:
    return RequestContext(user_id=2, role=Role.STAFF)


@pytest.fixture
def public_ctx() -> RequestContext:
    return RequestContext.public()


@pytest.fixture
def repos() -> Repositories:
    return Repositories(
        users=InMemoryUsers(),
        courses=InMemoryCourses([PIANO, ART]),
        students=InMemoryStudents(),
        applications=InMemoryApplications(),
        links=InMemoryLinks(),
        changes=InMemoryChanges(),
        attendance=InMemoryAttendance(),
        notifications=InMemoryNotifications(),
    )


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def container(repos, storage):
    return build_services(repos, storage=storage, hub=NotificationHub())


@pytest.fixture
def make_student(repos, fixed_now):
    """Insert an enrolled student directly: make_student(limits={1: 2})."""

    def _make(*, nick="Mint", courses=None, limits=None, qr_token=None):
        schedule = EnrollmentSchedule.from_mapping(courses or {1: {"Mon": ["13:00-14:00"]}})
        sid = repos.students.create(
            NewStudent(
                identity=ApplicantIdentity(nick_name=nick),
                schedule=schedule,
                course_limits=dict(limits if limits is not None else {1: 10}),
                receipt_urls=(),
                qr_token=qr_token or f"qr-{nick.lower()}",
                joined_at=fixed_now,
            )
        )
        return repos.students.get_by_id(sid)

    return _make
