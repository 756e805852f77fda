from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional


@dataclass(frozen=True)
class Course:
    """Domain entity: a course in the catalog."""

    course_id: int
    name: str
    weekdays: tuple[str, ...]
    times: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    capacity: int = 0

    def offers_day(self, day: str) -> bool:
        return day in self.weekdays

    def slots_for(self, day: str) -> tuple[str, ...]:
        return tuple(self.times.get(day, ()))

    def to_dict(self) -> dict:
        return {
            "course_id": self.course_id,
            "name": self.name,
            "weekdays": list(self.weekdays),
            "times": {d: list(ts) for d, ts in self.times.items()},
            "capacity": self.capacity,
        }


@dataclass(frozen=True)
class CourseDraft:
    """Input for creating or updating a course."""

    name: str
    weekdays: tuple[str, ...]
    times: Mapping[str, tuple[str, ...]]
    capacity: int = 0
    course_id: Optional[int] = None
