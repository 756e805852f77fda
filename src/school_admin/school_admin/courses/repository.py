from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Course, CourseDraft


class CourseRepository(Protocol):
    def list_all(self) -> Sequence[Course]:
        raise NotImplementedError

    def get_by_id(self, course_id: int) -> Optional[Course]:
        raise NotImplementedError

    def create(self, draft: CourseDraft) -> int:
        raise NotImplementedError

    def update(self, draft: CourseDraft) -> bool:
        raise NotImplementedError

    def delete(self, course_id: int) -> bool:
        raise NotImplementedError
