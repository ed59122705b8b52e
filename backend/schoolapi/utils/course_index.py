"""In-memory course index kept next to the timetable tables."""

from __future__ import annotations

import re
import threading
from typing import Iterable, Optional

_GRADE_RE = re.compile(r"^(\d+)(.*)$")


def _grade_sort_key(grade: str) -> tuple:
    m = _GRADE_RE.match(grade)
    if m:
        return (0, int(m.group(1)), m.group(2))
    return (1, 0, grade)


class CourseIndex:
    """Course ids by (grade, subject, group) plus the set of known grades.

    The index is a cache of the `course` table. It is filled by
    `TimeTableRepository.rebuild_course_list` and extended on every
    `add_course`; rows written by other processes only show up after a
    rebuild.
    """

    def __init__(self):
        self._by_fields: dict[tuple[str, str, str], int] = {}
        self._grades: set[str] = set()
        self._built = False
        self._lock = threading.Lock()

    @property
    def built(self) -> bool:
        return self._built

    def replace(self, courses: Iterable) -> int:
        by_fields = {}
        grades = set()
        for c in courses:
            by_fields.setdefault((c.grade, c.subject, c.group), c.id)
            grades.add(c.grade)
        with self._lock:
            self._by_fields = by_fields
            self._grades = grades
            self._built = True
        return len(by_fields)

    def add(self, course, replace: bool = False) -> None:
        key = (course.grade, course.subject, course.group)
        with self._lock:
            if replace:
                self._by_fields[key] = course.id
            else:
                self._by_fields.setdefault(key, course.id)
            self._grades.add(course.grade)

    def lookup(self, grade: str, subject: str, group: str) -> Optional[int]:
        with self._lock:
            return self._by_fields.get((grade, subject, group))

    def grades(self) -> list[str]:
        with self._lock:
            return sorted(self._grades, key=_grade_sort_key)

    def clear(self) -> None:
        with self._lock:
            self._by_fields = {}
            self._grades = set()
            self._built = False

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_fields)


course_index = CourseIndex()
