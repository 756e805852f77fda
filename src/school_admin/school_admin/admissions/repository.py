from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import ApplicationStatus
from .model import Application, ApplicationLink, NewApplication


class ApplicationRepository(Protocol):
    def create(self, application: NewApplication) -> int:
        raise NotImplementedError

    def get_by_id(self, application_id: int) -> Optional[Application]:
        raise NotImplementedError

    def list_all(
        self,
        *,
        status: Optional[ApplicationStatus] = None,
        oldest_first: bool = False,
        limit: int = 500,
    ) -> Sequence[Application]:
        raise NotImplementedError

    def count_by_status(self, status: ApplicationStatus) -> int:
        raise NotImplementedError

    def set_status(
        self,
        *,
        application_id: int,
        status: ApplicationStatus,
        reviewed_by: Optional[int],
        reviewed_at: datetime,
    ) -> bool:
        raise NotImplementedError

    def attach_student(self, *, application_id: int, student_id: int) -> bool:
        """Record the Student created from the application.

        Only succeeds while no student is attached; returns False otherwise.
        """

        raise NotImplementedError


class LinkRepository(Protocol):
    def get(self, token: str) -> Optional[ApplicationLink]:
        raise NotImplementedError

    def latest(self, link_type: str) -> Optional[ApplicationLink]:
        raise NotImplementedError

    def rotate(
        self,
        *,
        token: str,
        link_type: str,
        now: datetime,
        expire_at: datetime,
        expires_at: datetime,
        created_by: Optional[int],
    ) -> tuple[ApplicationLink, int]:
        """Expire every link of the type still valid at now, then insert the new one.

        Both steps run as one unit; concurrent rotations of the same type are
        serialized. Returns the new link and the number of links expired.
        """

        raise NotImplementedError
