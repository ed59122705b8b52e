"""CLI script to import a timetable JSON file into the backend DB.
Usage: python scripts/import_timetable.py FILE [--rebuild]

FILE holds an array of `{subject, grade, group, lesson, day, room}`
objects, the same shape `POST /timetable/lessons` accepts.
"""
import sys
import json
import argparse
import pathlib
# Ensure `backend/` is on sys.path so `schoolapi` package imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session
from schoolapi.database import engine, create_db_and_tables
from schoolapi import services, repositories


def main(path: pathlib.Path, rebuild: bool = False):
    """Import the lessons listed in `path` and print a summary.

    Invalid entries are skipped the same way the HTTP endpoint skips
    them. With `rebuild`, the course index is recomputed afterwards.
    """
    if not path.exists():
        print(f'Timetable file not found at {path}')
        return 1
    try:
        items = json.loads(path.read_text(encoding='utf-8'))
    except json.JSONDecodeError as e:
        print(f'Invalid JSON in {path}: {e}')
        return 1
    if not isinstance(items, list):
        print('Timetable file must contain a JSON array')
        return 1
    create_db_and_tables()
    with Session(engine) as session:
        result = services.LessonImportService(session).import_lessons(items)
        print(f"Imported {path}: created {result['created']}, skipped {result['skipped']}")
        if rebuild:
            count = repositories.TimeTableRepository(session).rebuild_course_list()
            print(f'Course index rebuilt: {count} courses')
    return 0


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('file', type=pathlib.Path, help='JSON file with the lessons to import')
    parser.add_argument('--rebuild', action='store_true', help='Rebuild the course index after importing')
    args = parser.parse_args()
    sys.exit(main(args.file, rebuild=args.rebuild))
