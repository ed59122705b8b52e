"""Business logic services used by HTTP controllers and scripts.

Services coordinate repositories for operations spanning more than one
aggregate. They are intentionally thin: validation and domain decisions
live here, persistence stays in the repositories.
"""

import json
import logging
from typing import Iterable, Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from . import models, repositories
from .schemas import LessonImportRow
from .utils.course_index import CourseIndex

logger = logging.getLogger("schoolapi.timetable")


class LessonImportService:
    """Best-effort bulk import of timetable lessons.

    Every item is handled on its own: an invalid item or a failing
    insert is logged and skipped, the remaining items are still imported.
    Nothing is rolled back across items.
    """
    def __init__(self, session: Session, index: Optional[CourseIndex] = None):
        self.session = session
        self.timetable = repositories.TimeTableRepository(session, index)

    def _resolve_course(self, row: LessonImportRow) -> models.Course:
        course = None
        try:
            course = self.timetable.get_course_by_fields(row.subject, row.grade, row.group)
        except SQLAlchemyError:
            # the lookup already logged; creating the course is still attempted
            course = None
        if course is None:
            course = self.timetable.add_course(
                models.Course(grade=row.grade, subject=row.subject, group=row.group, teacher=row.teacher)
            )
        return course

    def import_lessons(self, items: Iterable) -> dict:
        """Import `items` (dicts shaped like `LessonImportRow`).

        Returns `{'created': n, 'skipped': m}`.
        """
        created = 0
        skipped = 0
        for idx, item in enumerate(items):
            try:
                row = LessonImportRow.model_validate(item)
            except ValidationError as e:
                skipped += 1
                logger.warning(
                    "lesson_import_invalid %s",
                    json.dumps(
                        {"index": idx, "errors": [{"loc": [str(p) for p in err["loc"]], "msg": err["msg"]} for err in e.errors()]},
                        ensure_ascii=True,
                    ),
                )
                continue
            try:
                course = self._resolve_course(row)
                self.timetable.add_lesson(
                    models.Lesson(course_id=course.id, lesson=row.lesson, weekday=row.day, room=row.room)
                )
            except SQLAlchemyError as e:
                skipped += 1
                logger.warning(
                    "lesson_import_failed %s",
                    json.dumps({"index": idx, "row": row.model_dump(), "error": type(e).__name__}, ensure_ascii=True),
                )
                continue
            created += 1
        logger.info("lesson_import_done %s", json.dumps({"created": created, "skipped": skipped}))
        return {'created': created, 'skipped': skipped}
