import pytest
from sqlalchemy.exc import IntegrityError

from schoolapi.models import Course, Lesson
from schoolapi.repositories import TimeTableRepository
from schoolapi.utils.course_index import CourseIndex
from schoolapi.utils.dates import convert_mysql_date


def _course(repo, grade, subject, group, teacher=None):
    return repo.add_course(Course(grade=grade, subject=subject, group=group, teacher=teacher))


def test_add_course_assigns_id_and_is_found_by_fields(session, index):
    repo = TimeTableRepository(session, index)
    created = _course(repo, '10a', 'Math', 'M1')
    assert created.id is not None
    found = repo.get_course_by_fields('Math', '10a', 'M1')
    assert found is not None
    assert found.id == created.id
    assert index.lookup('10a', 'Math', 'M1') == created.id


def test_get_course_by_fields_returns_none_for_unknown_triple(session, index):
    repo = TimeTableRepository(session, index)
    _course(repo, '10a', 'Math', 'M1')
    assert repo.get_course_by_fields('Math', '10a', 'M2') is None
    assert repo.get_course_by_fields('Physics', '10a', 'M1') is None


def test_lookup_falls_back_to_table_when_index_is_stale(session, index):
    repo = TimeTableRepository(session, index)
    repo.rebuild_course_list()
    # written behind the repository's back, so the index does not know it
    session.add(Course(grade='Q1', subject='Art', group='A1'))
    session.commit()
    assert index.lookup('Q1', 'Art', 'A1') is None
    found = repo.get_course_by_fields('Art', 'Q1', 'A1')
    assert found is not None
    assert index.lookup('Q1', 'Art', 'A1') == found.id


def test_add_lesson_rejects_duplicate_period_and_session_stays_usable(session, index):
    repo = TimeTableRepository(session, index)
    course = _course(repo, '7b', 'German', 'D')
    repo.add_lesson(Lesson(course_id=course.id, lesson=2, weekday=1, room='A101'))
    with pytest.raises(IntegrityError):
        repo.add_lesson(Lesson(course_id=course.id, lesson=2, weekday=1, room='B202'))
    repo.add_lesson(Lesson(course_id=course.id, lesson=3, weekday=1, room='A101'))
    lessons = repo.get_all_lessons()
    assert [(l.lesson, l.room) for l in lessons] == [(2, 'A101'), (3, 'A101')]


def test_add_lesson_takes_course_id_from_relationship(session, index):
    repo = TimeTableRepository(session, index)
    course = _course(repo, '8c', 'Music', 'MU')
    lesson = repo.add_lesson(Lesson(course=course, lesson=5, weekday=4, room='Aula'))
    assert lesson.id is not None
    assert lesson.course_id == course.id


def test_get_all_courses_and_lessons_read_full_tables(session, index):
    repo = TimeTableRepository(session, index)
    a = _course(repo, '5a', 'English', 'E1')
    b = _course(repo, '6a', 'English', 'E1')
    repo.add_lesson(Lesson(course_id=b.id, lesson=1, weekday=2, room='101'))
    repo.add_lesson(Lesson(course_id=a.id, lesson=4, weekday=1, room='102'))
    assert [c.id for c in repo.get_all_courses()] == [a.id, b.id]
    assert [(l.weekday, l.lesson) for l in repo.get_all_lessons()] == [(1, 4), (2, 1)]


def test_find_courses_by_teacher_weekday_and_period(session, index):
    repo = TimeTableRepository(session, index)
    math = _course(repo, '10a', 'Math', 'M1', teacher='WIT')
    physics = _course(repo, '11b', 'Physics', 'P1', teacher='WIT')
    other = _course(repo, '10a', 'Biology', 'B1', teacher='ABC')
    repo.add_lesson(Lesson(course_id=math.id, lesson=3, weekday=2, room='201'))
    repo.add_lesson(Lesson(course_id=physics.id, lesson=3, weekday=2, room='Lab'))
    repo.add_lesson(Lesson(course_id=physics.id, lesson=4, weekday=2, room='Lab'))
    repo.add_lesson(Lesson(course_id=other.id, lesson=3, weekday=2, room='202'))

    found = repo.get_course_by_teacher_day_lesson('WIT', 2, 3)
    assert sorted(c.id for c in found) == sorted([math.id, physics.id])
    assert repo.get_course_by_teacher_day_lesson('WIT', 3, 3) == []


def test_rebuild_course_list_recomputes_index(session, index):
    repo = TimeTableRepository(session, index)
    assert repo.rebuild_course_list() == 0
    for grade in ('10a', '5b', 'Q1', '5a'):
        session.add(Course(grade=grade, subject='Sport', group='S'))
    session.commit()
    assert repo.get_grades() == []
    assert repo.rebuild_course_list() == 4
    assert repo.get_grades() == ['5a', '5b', '10a', 'Q1']


def test_course_index_keeps_first_course_of_a_triple():
    idx = CourseIndex()
    assert not idx.built

    class _C:
        def __init__(self, id, grade, subject, group):
            self.id, self.grade, self.subject, self.group = id, grade, subject, group

    assert idx.replace([_C(1, '9a', 'Math', 'M'), _C(2, '9a', 'Math', 'M')]) == 1
    assert idx.lookup('9a', 'Math', 'M') == 1
    idx.clear()
    assert len(idx) == 0 and not idx.built


@pytest.mark.parametrize('value, expected', [
    ('2021-03-04 10:15:00', '2021-03-04'),
    ('2021-12-31T23:59:59Z', '2021-12-31'),
    (None, None),
])
def test_convert_mysql_date(value, expected):
    assert convert_mysql_date(value) == expected


def test_lookup_ignores_index_entry_whose_id_now_holds_another_course(session, index):
    repo = TimeTableRepository(session, index)
    repo.rebuild_course_list()
    math = _course(repo, '10a', 'Math', 'M1')
    reused_id = math.id
    session.delete(math)
    session.commit()
    # a reimport outside the app hands the old id to a different course
    session.add(Course(id=reused_id, grade='11b', subject='Physics', group='P1'))
    session.commit()
    assert index.lookup('10a', 'Math', 'M1') == reused_id

    assert repo.get_course_by_fields('Math', '10a', 'M1') is None

    again = _course(repo, '10a', 'Math', 'M1')
    found = repo.get_course_by_fields('Math', '10a', 'M1')
    assert found.id == again.id
    assert (found.grade, found.subject, found.group) == ('10a', 'Math', 'M1')


def test_table_lookup_repairs_stale_index_entry(session, index):
    repo = TimeTableRepository(session, index)
    repo.rebuild_course_list()
    art = _course(repo, 'Q1', 'Art', 'A1')
    old_id = art.id
    session.delete(art)
    session.commit()
    replacement = Course(id=old_id + 50, grade='Q1', subject='Art', group='A1')
    session.add(replacement)
    session.commit()
    assert repo.get_course_by_fields('Art', 'Q1', 'A1').id == replacement.id
    assert index.lookup('Q1', 'Art', 'A1') == replacement.id
    assert len(index) == 1
