from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable, Optional

from ..admissions.model import Application
from ..admissions.repository import ApplicationRepository
from ..admissions.service import AdmissionsService
from ..changes.model import ApplicationChange
from ..changes.repository import ChangeRepository
from ..changes.service import ChangeRequestService
from ..common.datetime_utils import now_local
from ..common.validators import require_ids
from ..core.context import RequestContext
from ..core.enums import ApplicationStatus, ChangeStatus, ChangeType
from ..core.exceptions import DomainError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingQueue:
    new_applications: list[Application]
    renewals: list[ApplicationChange]
    course_edits: list[ApplicationChange]

    @property
    def total(self) -> int:
        return len(self.new_applications) + len(self.renewals) + len(self.course_edits)

    def to_dict(self) -> dict:
        return {
            "new_applications": [a.to_dict() for a in self.new_applications],
            "renewals": [c.to_dict() for c in self.renewals],
            "course_edits": [c.to_dict() for c in self.course_edits],
            "total": self.total,
        }


@dataclass
class ReviewOutcome:
    """Per-id result of a bulk decision."""

    processed: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)
    failed: dict[int, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "processed": self.processed,
            "skipped": self.skipped,
            "failed": {str(k): v for k, v in self.failed.items()},
        }


class ReviewQueueService:
    """Bulk approve/reject over pending applications and change requests.

    Rejection only sets status=rejected; rows are kept.
    """

    def __init__(
        self,
        applications: ApplicationRepository,
        changes: ChangeRepository,
        admissions: AdmissionsService,
        change_requests: ChangeRequestService,
    ):
        self._applications = applications
        self._changes = changes
        self._admissions = admissions
        self._change_requests = change_requests

    def list_pending(self, ctx: RequestContext) -> PendingQueue:
        ctx.require_staff()
        apps = list(self._applications.list_all(status=ApplicationStatus.PENDING, oldest_first=True))
        changes = list(self._changes.list_all(status=ChangeStatus.PENDING, oldest_first=True))
        return PendingQueue(
            new_applications=apps,
            renewals=[c for c in changes if c.change_type == ChangeType.RENEWAL],
            course_edits=[c for c in changes if c.change_type == ChangeType.EDIT],
        )

    def pending_count(self, ctx: RequestContext) -> int:
        ctx.require_staff()
        return self._applications.count_by_status(ApplicationStatus.PENDING) + self._changes.count_by_status(
            ChangeStatus.PENDING
        )

    def approve_applications(self, ctx: RequestContext, ids: Iterable[Any], *, now: Optional[datetime] = None) -> ReviewOutcome:
        return self._bulk_applications(ctx, ids, ApplicationStatus.APPROVED, now)

    def reject_applications(self, ctx: RequestContext, ids: Iterable[Any], *, now: Optional[datetime] = None) -> ReviewOutcome:
        return self._bulk_applications(ctx, ids, ApplicationStatus.REJECTED, now)

    def approve_changes(self, ctx: RequestContext, ids: Iterable[Any], *, now: Optional[datetime] = None) -> ReviewOutcome:
        return self._bulk_changes(ctx, ids, True, now)

    def reject_changes(self, ctx: RequestContext, ids: Iterable[Any], *, now: Optional[datetime] = None) -> ReviewOutcome:
        return self._bulk_changes(ctx, ids, False, now)

    def _bulk_applications(self, ctx, ids, status: ApplicationStatus, now) -> ReviewOutcome:
        ctx.require_admin()
        now = now or now_local()
        return self._run(
            ids,
            lambda i: self._admissions.decide(ctx, i, status, now=now, only_pending=True),
            label=f"application {status.value}",
        )

    def _bulk_changes(self, ctx, ids, approve: bool, now) -> ReviewOutcome:
        ctx.require_admin()
        now = now or now_local()
        return self._run(
            ids,
            lambda i: self._change_requests.decide(ctx, i, approve, now=now),
            label="change approved" if approve else "change rejected",
        )

    @staticmethod
    def _run(ids: Iterable[Any], decide: Callable[[int], bool], *, label: str) -> ReviewOutcome:
        selected = require_ids(ids, "Selection")
        if not selected:
            raise ValidationError("Select at least one item")

        outcome = ReviewOutcome()
        for item_id in selected:
            try:
                if decide(item_id):
                    outcome.processed.append(item_id)
                else:
                    outcome.skipped.append(item_id)
            except NotFoundError:
                outcome.skipped.append(item_id)
            except DomainError as e:
                logger.warning("Review %s failed for %s: %s", label, item_id, e)
                outcome.failed[item_id] = str(e)
        logger.info(
            "Review %s: processed=%s skipped=%s failed=%s",
            label,
            outcome.processed,
            outcome.skipped,
            list(outcome.failed),
        )
        return outcome
