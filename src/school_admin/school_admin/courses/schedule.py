"""Enrollment schedule value object.

A schedule maps course id -> weekday -> ordered time-slot labels. It replaces
the loose nested dicts that used to travel between forms and tables: it is
parsed once at the boundary and validated against the course catalog.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional

from ..core.exceptions import ValidationError
from .model import Course

Slots = Mapping[str, tuple[str, ...]]


def slot_matches(slot: str, wanted: str) -> bool:
    """'13:00' matches '13:00-14:00'; full labels must match exactly."""

    return slot == wanted or slot.split("-")[0] == wanted.split("-")[0]


@dataclass(frozen=True)
class EnrollmentSchedule:
    courses: Mapping[int, Slots] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, raw: Optional[Mapping[Any, Any]], *, strict: bool = True) -> "EnrollmentSchedule":
        """Build from `{course_id: {day: [time, ...]}}`.

        strict=True is for user input: a repeated time on a day is an error.
        strict=False is for stored rows: repeats are folded silently.
        """

        out: dict[int, dict[str, tuple[str, ...]]] = {}
        for cid, days in (raw or {}).items():
            try:
                course_id = int(cid)
            except (TypeError, ValueError):
                raise ValidationError(f"Invalid course id: {cid!r}")
            if not isinstance(days, Mapping):
                raise ValidationError("Schedule must map each course to weekdays")

            per_day: dict[str, tuple[str, ...]] = {}
            for day, times in days.items():
                seen: list[str] = []
                for t in times or []:
                    t = str(t).strip()
                    if not t:
                        continue
                    if t in seen:
                        if strict:
                            raise ValidationError(f"Duplicate time {t} on {day}")
                        continue
                    seen.append(t)
                per_day[str(day)] = tuple(seen)
            out[course_id] = per_day
        return cls(out)

    def to_json(self) -> dict[str, dict[str, list[str]]]:
        return {str(cid): {d: list(ts) for d, ts in days.items()} for cid, days in self.courses.items()}

    @property
    def course_ids(self) -> tuple[int, ...]:
        return tuple(self.courses.keys())

    def is_empty(self) -> bool:
        return not self.courses

    def enrolled_in(self, course_id: int) -> bool:
        return int(course_id) in self.courses

    def validate(self, catalog: Mapping[int, Course]) -> None:
        if self.is_empty():
            raise ValidationError("Please choose at least one course, day and time")

        for cid, days in self.courses.items():
            course = catalog.get(cid)
            if course is None:
                raise ValidationError(f"Unknown course: {cid}")
            if not days:
                raise ValidationError(f"Choose at least one day for {course.name}")
            for day, times in days.items():
                if not course.offers_day(day):
                    raise ValidationError(f"{course.name} does not run on {day}")
                if not times:
                    raise ValidationError(f"Choose at least one time for {course.name} on {day}")
                offered = course.slots_for(day)
                if offered:
                    for t in times:
                        if t not in offered:
                            raise ValidationError(f"{course.name} has no {t} slot on {day}")

    def merge(self, other: "EnrollmentSchedule") -> "EnrollmentSchedule":
        out: dict[int, dict[str, tuple[str, ...]]] = {cid: dict(days) for cid, days in self.courses.items()}
        for cid, days in other.courses.items():
            target = out.setdefault(cid, {})
            for day, times in days.items():
                current = list(target.get(day, ()))
                current.extend(t for t in times if t not in current)
                target[day] = tuple(current)
        return EnrollmentSchedule(out)

    def move_day(self, course_id: int, old_day: str, new_day: str) -> "EnrollmentSchedule":
        days = dict(self.courses.get(int(course_id), {}))
        if old_day not in days or old_day == new_day:
            return self
        moved = days.pop(old_day)
        current = list(days.get(new_day, ()))
        current.extend(t for t in moved if t not in current)
        days[new_day] = tuple(current)
        return self._with(int(course_id), days)

    def replace_time(self, course_id: int, day: str, old_time: str, new_time: str) -> "EnrollmentSchedule":
        days = dict(self.courses.get(int(course_id), {}))
        if day not in days or old_time == new_time:
            return self
        replaced: list[str] = []
        for t in days[day]:
            t = new_time if t == old_time else t
            if t not in replaced:
                replaced.append(t)
        days[day] = tuple(replaced)
        return self._with(int(course_id), days)

    def has_slot(self, course_id: int, day: Optional[str] = None, time: Optional[str] = None) -> bool:
        days = self.courses.get(int(course_id))
        if not days:
            return False
        if not day:
            return True
        times = days.get(day)
        if not times:
            return False
        if not time:
            return True
        return any(slot_matches(t, time) for t in times)

    def _with(self, course_id: int, days: Slots) -> "EnrollmentSchedule":
        out = dict(self.courses)
        out[course_id] = days
        return EnrollmentSchedule(out)


def single_slot(course_id: int, day: str, time: str) -> EnrollmentSchedule:
    return EnrollmentSchedule({int(course_id): {day: (time,)}})


def parse_course_limits(raw: Optional[Mapping[Any, Any]], *, course_ids: Iterable[int]) -> dict[int, int]:
    """Hour allotments keyed by course id; every selected course needs one >= 1."""

    limits: dict[int, int] = {}
    for cid, hours in (raw or {}).items():
        try:
            limits[int(cid)] = int(hours)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid hours for course {cid}")

    for cid in course_ids:
        if limits.get(cid, 0) < 1:
            raise ValidationError(f"Enter the purchased hours for course {cid}")

    selected = set(course_ids)
    return {cid: h for cid, h in limits.items() if cid in selected}
