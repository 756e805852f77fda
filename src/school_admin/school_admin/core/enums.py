from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles used for authorization checks."""

    ADMIN = "admin"
    STAFF = "staff"
    PUBLIC = "public"


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    WAITLIST = "waitlist"
    REJECTED = "rejected"


class ChangeType(str, Enum):
    """Kind of change an enrolled student asks for."""

    RENEWAL = "renewal"
    EDIT = "edit"


class ChangeStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class StudentStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class NotificationType(str, Enum):
    NEW_APPLICATION = "new_application"
    EDIT_REQUEST = "edit_request"
    COURSE_LIMIT = "course_limit"
    PENDING_CHECKIN = "pending_checkin"


class CheckinState(str, Enum):
    """State of one (student, course, date) cell on the attendance board."""

    ABSENT = "absent"
    PRESENT = "present"
