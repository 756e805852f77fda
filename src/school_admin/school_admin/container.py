from __future__ import annotations

from dataclasses import dataclass

from .admissions.mysql_application_repository import MySQLApplicationRepository
from .admissions.mysql_link_repository import MySQLLinkRepository
from .admissions.repository import ApplicationRepository, LinkRepository
from .admissions.service import AdmissionsService, PublicLinkService
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .changes.mysql_change_repository import MySQLChangeRepository
from .changes.repository import ChangeRepository
from .changes.service import ChangeRequestService
from .core.constants import DEFAULT_PUBLIC_LINK_DAYS
from .courses.mysql_course_repository import MySQLCourseRepository
from .courses.repository import CourseRepository
from .courses.service import CourseService
from .database.connection import DBConfig, DatabaseConnection
from .notifications.hub import NotificationHub
from .notifications.mysql_notification_repository import MySQLNotificationRepository
from .notifications.repository import NotificationRepository
from .notifications.service import NotificationService
from .review.service import ReviewQueueService
from .storage.receipts import LocalReceiptStorage, ReceiptStorage
from .students.mysql_student_repository import MySQLStudentRepository
from .students.repository import StudentRepository
from .students.service import StudentService
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import AuthService, UserService


@dataclass(frozen=True)
class Repositories:
    users: UserRepository
    courses: CourseRepository
    students: StudentRepository
    applications: ApplicationRepository
    links: LinkRepository
    changes: ChangeRepository
    attendance: AttendanceRepository
    notifications: NotificationRepository


@dataclass(frozen=True)
class Container:
    repos: Repositories
    storage: ReceiptStorage
    hub: NotificationHub

    auth_service: AuthService
    user_service: UserService
    course_service: CourseService
    student_service: StudentService
    notification_service: NotificationService
    link_service: PublicLinkService
    admissions_service: AdmissionsService
    change_service: ChangeRequestService
    review_service: ReviewQueueService
    attendance_service: AttendanceService


def build_services(
    repos: Repositories,
    *,
    storage: ReceiptStorage,
    hub: NotificationHub,
    public_link_days: int = DEFAULT_PUBLIC_LINK_DAYS,
) -> Container:
    """Wire services over any repository set (MySQL in the app, in-memory in tests)."""

    notification_service = NotificationService(repos.notifications, hub)
    student_service = StudentService(repos.students, repos.courses, repos.attendance)
    link_service = PublicLinkService(repos.links, valid_days=public_link_days)
    admissions_service = AdmissionsService(
        repos.applications,
        repos.courses,
        student_service,
        storage,
        notification_service,
        link_service,
    )
    change_service = ChangeRequestService(
        repos.changes,
        repos.students,
        repos.courses,
        student_service,
        storage,
        notification_service,
    )

    return Container(
        repos=repos,
        storage=storage,
        hub=hub,
        auth_service=AuthService(repos.users),
        user_service=UserService(repos.users),
        course_service=CourseService(repos.courses, repos.students),
        student_service=student_service,
        notification_service=notification_service,
        link_service=link_service,
        admissions_service=admissions_service,
        change_service=change_service,
        review_service=ReviewQueueService(repos.applications, repos.changes, admissions_service, change_service),
        attendance_service=AttendanceService(repos.attendance, repos.students, repos.courses, notification_service),
    )


def build_container(
    *,
    db_config: dict,
    receipts_dir: str,
    receipts_url_prefix: str = "/receipts",
    public_link_days: int = DEFAULT_PUBLIC_LINK_DAYS,
    connect_retries: int = 3,
) -> Container:
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
        connection_timeout=int(db_config.get("connection_timeout", 10)),
        connect_retries=int(connect_retries),
    )
    conn = DatabaseConnection.get_instance(config)

    repos = Repositories(
        users=MySQLUserRepository(conn),
        courses=MySQLCourseRepository(conn),
        students=MySQLStudentRepository(conn),
        applications=MySQLApplicationRepository(conn),
        links=MySQLLinkRepository(conn),
        changes=MySQLChangeRepository(conn),
        attendance=MySQLAttendanceRepository(conn),
        notifications=MySQLNotificationRepository(conn),
    )
    return build_services(
        repos,
        storage=LocalReceiptStorage(receipts_dir, url_prefix=receipts_url_prefix),
        hub=NotificationHub(),
        public_link_days=public_link_days,
    )
