from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Mapping, Optional, Sequence

from ..common.datetime_utils import now_local
from ..core.constants import ADMISSIONS_LINK_TYPE, DEFAULT_PUBLIC_LINK_DAYS, LINK_EXPIRE_SKEW_SECONDS
from ..core.context import RequestContext
from ..core.enums import ApplicationStatus, NotificationType, Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..courses.repository import CourseRepository
from ..courses.schedule import EnrollmentSchedule, parse_course_limits
from ..notifications.service import NotificationService
from ..storage.receipts import ReceiptStorage, Upload, store_receipts
from ..students.model import ApplicantIdentity
from ..students.service import StudentService
from .model import Application, ApplicationLink, NewApplication, SubmissionResult
from .repository import ApplicationRepository, LinkRepository

logger = logging.getLogger(__name__)

_DECISIONS = {ApplicationStatus.APPROVED, ApplicationStatus.WAITLIST, ApplicationStatus.REJECTED}


class PublicLinkService:
    """Keeps at most one valid public admissions link per link type."""

    def __init__(self, links: LinkRepository, *, valid_days: int = DEFAULT_PUBLIC_LINK_DAYS):
        self._links = links
        self._valid_days = int(valid_days)

    def _generate(self, *, created_by: Optional[int], now: datetime, link_type: str) -> ApplicationLink:
        link, expired = self._links.rotate(
            token=uuid.uuid4().hex,
            link_type=link_type,
            now=now,
            expire_at=now - timedelta(seconds=LINK_EXPIRE_SKEW_SECONDS),
            expires_at=now + timedelta(days=self._valid_days),
            created_by=created_by,
        )
        logger.info("Public %s link rotated (expired %d previous)", link_type, expired)
        return link

    def _current(self, *, created_by: Optional[int], now: datetime, link_type: str) -> ApplicationLink:
        latest = self._links.latest(link_type)
        if latest and latest.is_valid(now):
            return latest
        return self._generate(created_by=created_by, now=now, link_type=link_type)

    def current_link(
        self,
        ctx: RequestContext,
        *,
        now: Optional[datetime] = None,
        link_type: str = ADMISSIONS_LINK_TYPE,
    ) -> ApplicationLink:
        ctx.require_staff()
        return self._current(created_by=ctx.user_id, now=now or now_local(), link_type=link_type)

    def rotate(
        self,
        ctx: RequestContext,
        *,
        now: Optional[datetime] = None,
        link_type: str = ADMISSIONS_LINK_TYPE,
    ) -> ApplicationLink:
        ctx.require_staff()
        return self._generate(created_by=ctx.user_id, now=now or now_local(), link_type=link_type)

    def is_valid(self, token: Optional[str], *, now: datetime, link_type: str = ADMISSIONS_LINK_TYPE) -> bool:
        if not token:
            return False
        link = self._links.get(token)
        return bool(link and link.link_type == link_type and link.is_valid(now))

    def resolve(
        self,
        token: Optional[str],
        *,
        now: Optional[datetime] = None,
        link_type: str = ADMISSIONS_LINK_TYPE,
    ) -> ApplicationLink:
        """The link for token if still valid, else the latest valid one (created if needed)."""

        now = now or now_local()
        if token:
            link = self._links.get(token)
            if link and link.link_type == link_type and link.is_valid(now):
                return link
        return self._current(created_by=None, now=now, link_type=link_type)


class AdmissionsService:
    def __init__(
        self,
        applications: ApplicationRepository,
        courses: CourseRepository,
        students: StudentService,
        storage: ReceiptStorage,
        notifications: NotificationService,
        links: PublicLinkService,
    ):
        self._applications = applications
        self._courses = courses
        self._students = students
        self._storage = storage
        self._notifications = notifications
        self._links = links

    def submit(
        self,
        ctx: RequestContext,
        *,
        identity: ApplicantIdentity,
        schedule: EnrollmentSchedule,
        course_limits: Mapping[Any, Any],
        receipts: Sequence[Upload] = (),
        link_token: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> SubmissionResult:
        now = now or now_local()
        if ctx.role == Role.PUBLIC:
            if not self._links.is_valid(link_token, now=now):
                raise AuthorizationError("This application link has expired")
        else:
            ctx.require_staff()

        catalog = {c.course_id: c for c in self._courses.list_all()}
        schedule.validate(catalog)
        if not identity.nick_name:
            raise ValidationError("Nick name is required")
        limits = parse_course_limits(course_limits, course_ids=schedule.course_ids)

        # uploads happen before any row is written; a failure leaves no row behind
        urls = store_receipts(self._storage, receipts, now=now)

        if ctx.is_operator:
            student_id = self._students.enroll(
                identity=identity,
                schedule=schedule,
                course_limits=limits,
                receipt_urls=urls,
                now=now,
            )
            return SubmissionResult(kind="student", id=student_id)

        application_id = self._applications.create(
            NewApplication(identity=identity, schedule=schedule, course_limits=limits, receipt_urls=tuple(urls))
        )
        self._notifications.notify(
            NotificationType.NEW_APPLICATION,
            payload={"application_id": application_id, "name": identity.display_name},
        )
        logger.info("Application %s submitted (role=%s)", application_id, ctx.role.value)
        return SubmissionResult(kind="application", id=application_id)

    def list_applications(
        self,
        ctx: RequestContext,
        *,
        status: Optional[ApplicationStatus] = None,
    ) -> Sequence[Application]:
        ctx.require_staff()
        return self._applications.list_all(status=status)

    def decide(
        self,
        ctx: RequestContext,
        application_id: int,
        status: ApplicationStatus,
        *,
        now: Optional[datetime] = None,
        only_pending: bool = False,
    ) -> bool:
        """Move an application to approved/waitlist/rejected.

        The first approval creates the Student from the application. Returns
        False when only_pending is set and the application was already decided.
        """

        ctx.require_admin()
        if status not in _DECISIONS:
            raise ValidationError("Status must be approved, waitlist or rejected")

        app = self._applications.get_by_id(int(application_id))
        if not app:
            raise NotFoundError("Application not found")
        if only_pending and app.status != ApplicationStatus.PENDING:
            return False

        now = now or now_local()
        if status == ApplicationStatus.APPROVED and app.student_id is None:
            self._materialise(ctx, app, now)

        self._applications.set_status(
            application_id=app.application_id,
            status=status,
            reviewed_by=ctx.user_id,
            reviewed_at=now,
        )
        logger.info("Application %s -> %s by %s", app.application_id, status.value, ctx.user_id)
        return True

    def _materialise(self, ctx: RequestContext, app: Application, now: datetime) -> None:
        student_id = self._students.enroll(
            identity=app.identity,
            schedule=app.schedule,
            course_limits=app.course_limits,
            receipt_urls=app.receipt_urls,
            now=now,
        )
        if not self._applications.attach_student(application_id=app.application_id, student_id=student_id):
            # another approval attached its student first
            self._students.delete_student(ctx, student_id)
            logger.warning("Application %s already had a student; dropped duplicate %s", app.application_id, student_id)

    def set_status(
        self,
        ctx: RequestContext,
        application_id: int,
        status: ApplicationStatus,
        *,
        now: Optional[datetime] = None,
    ) -> None:
        self.decide(ctx, application_id, status, now=now)
