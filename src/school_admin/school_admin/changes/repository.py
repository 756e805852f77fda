from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import ChangeStatus, ChangeType
from .model import ApplicationChange, NewChange


class ChangeRepository(Protocol):
    def create(self, change: NewChange) -> int:
        raise NotImplementedError

    def get_by_id(self, change_id: int) -> Optional[ApplicationChange]:
        raise NotImplementedError

    def list_all(
        self,
        *,
        status: Optional[ChangeStatus] = None,
        change_type: Optional[ChangeType] = None,
        student_id: Optional[int] = None,
        oldest_first: bool = False,
    ) -> Sequence[ApplicationChange]:
        raise NotImplementedError

    def count_by_status(self, status: ChangeStatus) -> int:
        raise NotImplementedError

    def set_status(
        self,
        *,
        change_id: int,
        status: ChangeStatus,
        reviewed_by: Optional[int],
        reviewed_at: datetime,
    ) -> bool:
        raise NotImplementedError
