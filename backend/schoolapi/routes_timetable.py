"""Timetable endpoints (courses, lessons, grades).

Every route requires the `timeTable` permission; writing lessons also
needs `timeTableAdmin`. Callers without them get a bare 401 and a logged
privilege violation.
"""

from typing import Any, List

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from . import models
from .auth import require_permission
from .database import get_session
from .repositories import TimeTableRepository
from .schemas import CourseQuery
from .services import LessonImportService
from .utils.course_index import course_index

router = APIRouter(
    prefix="/timetable",
    tags=["timetable"],
    dependencies=[Depends(require_permission("timeTable"))],
)


def get_course_index():
    """Return the process-wide course index (overridable in tests)."""
    return course_index


def get_timetable(db: Session = Depends(get_session), index=Depends(get_course_index)) -> TimeTableRepository:
    return TimeTableRepository(db, index)


def _course_out(c: models.Course) -> dict:
    return {'id': c.id, 'grade': c.grade, 'subject': c.subject, 'group': c.group, 'teacher': c.teacher}


def _lesson_out(lesson: models.Lesson) -> dict:
    return {
        'id': lesson.id,
        'course': _course_out(lesson.course) if lesson.course is not None else None,
        'lesson': lesson.lesson,
        'weekday': lesson.weekday,
        'room': lesson.room,
    }


@router.post('/lessons', dependencies=[Depends(require_permission("timeTableAdmin"))])
def add_lessons(items: List[Any] = Body(...), db: Session = Depends(get_session), index=Depends(get_course_index)):
    """Add lessons in bulk, creating missing courses on the way.

    The body is an array of `{subject, grade, group, lesson, day, room}`
    objects. Items that fail are logged and skipped, so the endpoint
    answers 200 as long as the caller is allowed to write.
    """
    LessonImportService(db, index).import_lessons(items)
    return {'status': 'ok'}


@router.post('/find/course')
def find_course(query: CourseQuery, timetable: TimeTableRepository = Depends(get_timetable)):
    """Return the courses a teacher gives in one period of one weekday."""
    try:
        courses = timetable.get_course_by_teacher_day_lesson(query.teacher, query.weekday, query.lesson)
    except SQLAlchemyError:
        raise HTTPException(status_code=500)
    return [_course_out(c) for c in courses]


@router.get('/grades')
def list_grades(timetable: TimeTableRepository = Depends(get_timetable)):
    """Return all grades that have at least one course."""
    return timetable.get_grades()


@router.get('/courses')
def list_courses(timetable: TimeTableRepository = Depends(get_timetable)):
    """Return all courses."""
    return [_course_out(c) for c in timetable.get_all_courses()]


@router.get('/lessons')
def list_lessons(timetable: TimeTableRepository = Depends(get_timetable)):
    """Return all lessons with their course, ordered by weekday and period."""
    return [_lesson_out(lesson) for lesson in timetable.get_all_lessons()]


@router.get('/rebuild')
def rebuild(timetable: TimeTableRepository = Depends(get_timetable)):
    """Recompute the cached course index from the database."""
    count = timetable.rebuild_course_list()
    return {'status': 'ok', 'courses': count}
