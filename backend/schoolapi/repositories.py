"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (devices,
timetable). Repositories receive the request-scoped `Session`, commit
their own writes and roll back on failure. Storage errors are logged with
the repository and function name and then re-raised unchanged; callers
decide how to answer them.
"""

import json
import logging
from collections.abc import Mapping
from contextlib import contextmanager
from pathlib import Path
from types import SimpleNamespace
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select, delete

from . import models
from .utils.course_index import CourseIndex, course_index

_FILE = Path(__file__).name


class _Repository:
    label = ""
    logger = logging.getLogger("schoolapi")

    def __init__(self, session: Session):
        self.session = session

    @contextmanager
    def _storage_errors(self, function: str):
        try:
            yield
        except SQLAlchemyError as e:
            self.session.rollback()
            self.logger.error(
                "storage_error %s",
                json.dumps(
                    {
                        "label": self.label,
                        "message": f"Class: {type(self).__name__}; Function: {function}: {e}",
                        "file": _FILE,
                    },
                    ensure_ascii=True,
                ),
            )
            raise


class DeviceRepository(_Repository):
    """Registry of notification devices (`devices` table).

    A device identifier is registered at most once: `save` refuses an
    identifier that is already stored and reports it with `False`.
    """
    label = "User"
    logger = logging.getLogger("schoolapi.devices")

    @staticmethod
    def from_sql_row(row) -> models.Device:
        """Map a `devices` row to a `Device` without validating it.

        `row` is a `DeviceRow`, a result `Row` or a mapping keyed by the
        column names (`id_devices`, `userId`, `deviceIdentifier`,
        `platform`, `added`).
        """
        if isinstance(row, Mapping):
            row = SimpleNamespace(**row)
        elif hasattr(row, "_mapping"):
            row = SimpleNamespace(**row._mapping)
        added = row.added
        if added is not None and not isinstance(added, str):
            added = added.isoformat()
        return models.Device(
            id=row.id_devices,
            user_id=row.userId,
            platform=row.platform,
            device_identifier=row.deviceIdentifier,
            time_added=added,
        )

    def remove_device(self, device_identifier: str) -> None:
        """Delete every device stored under `device_identifier`.

        Nothing is reported when no row matched.
        """
        with self._storage_errors("removeDevice"):
            self.session.exec(
                delete(models.DeviceRow).where(models.DeviceRow.deviceIdentifier == device_identifier)
            )
            self.session.commit()

    def get_by_uid(self, user_id: int) -> List[models.Device]:
        """Return the devices of `user_id`, skipping rows without identifier."""
        with self._storage_errors("getByUID"):
            stmt = select(models.DeviceRow).where(models.DeviceRow.userId == user_id).order_by(models.DeviceRow.id_devices)
            rows = self.session.exec(stmt).all()
        return [self.from_sql_row(r) for r in rows if r.deviceIdentifier is not None]

    def save(self, device: models.Device) -> bool:
        """Insert `device` unless its identifier is already registered.

        Returns `True` after inserting (and fills `device.id` and
        `device.time_added`), `False` when the identifier exists. Two
        concurrent saves of the same identifier both pass the lookup; the
        unique constraint rejects the second insert, which is reported as
        `False` as well.
        """
        with self._storage_errors("addDevice"):
            stmt = select(models.DeviceRow.id_devices).where(
                models.DeviceRow.deviceIdentifier == device.device_identifier
            )
            if self.session.exec(stmt).first() is not None:
                return False
            row = models.DeviceRow(
                userId=device.user_id,
                deviceIdentifier=device.device_identifier,
                platform=int(device.platform),
            )
            self.session.add(row)
            try:
                self.session.commit()
            except IntegrityError:
                self.session.rollback()
                self.logger.info("device_already_registered %s", json.dumps({"user_id": device.user_id}))
                return False
            self.session.refresh(row)
        saved = self.from_sql_row(row)
        device.id = saved.id
        device.time_added = saved.time_added
        return True

    def delete(self, device: models.Device) -> bool:
        """Delete `device` by its numeric id; `True` even if no row existed."""
        with self._storage_errors("delete"):
            self.session.exec(delete(models.DeviceRow).where(models.DeviceRow.id_devices == device.id))
            self.session.commit()
        return True


class TimeTableRepository(_Repository):
    """Courses and lessons plus the cached course index.

    Reads of whole tables always go to the database. Course lookups by
    (grade, subject, group) and the grade list are served from the
    `CourseIndex`, which is built on first use and recomputed by
    `rebuild_course_list`.
    """
    label = "TimeTable"
    logger = logging.getLogger("schoolapi.timetable")

    def __init__(self, session: Session, index: Optional[CourseIndex] = None):
        super().__init__(session)
        self.index = index if index is not None else course_index

    def _ensure_index(self):
        if not self.index.built:
            self.rebuild_course_list()

    def get_course_by_fields(self, subject: str, grade: str, group: str) -> Optional[models.Course]:
        """Return the course with the given natural key or `None`."""
        self._ensure_index()
        with self._storage_errors("getCourseByFields"):
            course_id = self.index.lookup(grade, subject, group)
            if course_id is not None:
                course = self.session.get(models.Course, course_id)
                if course is not None and (course.grade, course.subject, course.group) == (grade, subject, group):
                    return course
            # index miss or stale entry (row gone or id now held by another course): the table is the source of truth
            stmt = select(models.Course).where(
                models.Course.grade == grade,
                models.Course.subject == subject,
                models.Course.group == group,
            ).order_by(models.Course.id)
            course = self.session.exec(stmt).first()
        if course is not None:
            self.index.add(course, replace=True)
        return course

    def add_course(self, course: models.Course) -> models.Course:
        """Persist a new course and return it with its assigned id."""
        with self._storage_errors("addCourse"):
            self.session.add(course)
            self.session.commit()
            self.session.refresh(course)
        self.index.add(course)
        return course

    def add_lesson(self, lesson: models.Lesson) -> models.Lesson:
        """Persist a lesson of an already stored course.

        Raises `IntegrityError` when the course already has a lesson in
        that period on that weekday.
        """
        if lesson.course is not None and lesson.course_id is None:
            lesson.course_id = lesson.course.id
        with self._storage_errors("addLesson"):
            self.session.add(lesson)
            self.session.commit()
            self.session.refresh(lesson)
        return lesson

    def get_all_courses(self) -> List[models.Course]:
        with self._storage_errors("getAllCourses"):
            return self.session.exec(select(models.Course).order_by(models.Course.id)).all()

    def get_all_lessons(self) -> List[models.Lesson]:
        with self._storage_errors("getAllLessons"):
            stmt = select(models.Lesson).order_by(models.Lesson.weekday, models.Lesson.lesson, models.Lesson.id)
            return self.session.exec(stmt).all()

    def get_course_by_teacher_day_lesson(self, teacher: str, weekday: int, lesson: int) -> List[models.Course]:
        """Return the courses `teacher` gives in period `lesson` on `weekday`."""
        with self._storage_errors("getCourseByTeacherDayLesson"):
            stmt = (
                select(models.Course)
                .join(models.Lesson)
                .where(
                    models.Course.teacher == teacher,
                    models.Lesson.weekday == weekday,
                    models.Lesson.lesson == lesson,
                )
                .distinct()
                .order_by(models.Course.id)
            )
            return self.session.exec(stmt).all()

    def get_grades(self) -> List[str]:
        """Return every grade that has at least one course."""
        self._ensure_index()
        return self.index.grades()

    def rebuild_course_list(self) -> int:
        """Recompute the course index from the `course` table.

        Returns the number of indexed courses.
        """
        with self._storage_errors("rebuildCourseList"):
            courses = self.session.exec(select(models.Course).order_by(models.Course.id)).all()
        count = self.index.replace(courses)
        self.logger.info("course_index_rebuilt %s", json.dumps({"courses": count}))
        return count
