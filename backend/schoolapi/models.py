"""SQLModel data models.

This module defines the database tables (devices, courses, lessons) and
the in-memory `Device` entity handed out by the device registry. The
`devices` table keeps the column names of the existing production schema,
so `DeviceRow` attributes mirror those names exactly.
"""

from enum import IntEnum
from typing import List, Optional
from datetime import datetime, timezone

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field, Relationship


class DeviceType(IntEnum):
    """Notification platform of a device.

    The numeric values are stored in `devices.platform`; they must not be
    renumbered without migrating the stored rows.
    """
    TELEGRAM = 0
    APNS = 1
    FIREBASE = 2
    WEBPUSH = 3
    MAIL = 4


class DeviceRow(SQLModel, table=True):
    """Persisted shape of a device (`devices` table)."""
    __tablename__ = "devices"

    id_devices: Optional[int] = Field(default=None, primary_key=True)
    userId: Optional[int] = Field(default=None, index=True)
    deviceIdentifier: Optional[str] = Field(default=None, unique=True, max_length=255)
    platform: int
    added: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Device(SQLModel):
    """A registered push-notification endpoint belonging to a user.

    `id` and `time_added` stay `None` until the device has been saved.
    `platform` holds the stored integer; it is not checked against
    `DeviceType` when loaded from a row.
    """
    id: Optional[int] = None
    user_id: Optional[int] = None
    platform: int
    device_identifier: str
    time_added: Optional[str] = None
    verified: bool = True


class Course(SQLModel, table=True):
    """A class section identified by (grade, subject, group).

    `teacher` is the teacher shorthand used by the course lookup; it is
    optional because imported timetables do not always carry it.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    grade: str = Field(index=True)
    subject: str
    group: str
    teacher: Optional[str] = Field(default=None, index=True)
    lessons: List['Lesson'] = Relationship(back_populates='course')


class Lesson(SQLModel, table=True):
    """A scheduled occurrence of a `Course`.

    `lesson` is the period index inside the school day and `weekday` the
    day number (1 = Monday). A course cannot hold the same period twice on
    one day.
    """
    __table_args__ = (UniqueConstraint('course_id', 'lesson', 'weekday'),)

    id: Optional[int] = Field(default=None, primary_key=True)
    course_id: int = Field(foreign_key='course.id', index=True)
    lesson: int
    weekday: int
    room: Optional[str] = None
    course: Optional[Course] = Relationship(back_populates='lessons')
