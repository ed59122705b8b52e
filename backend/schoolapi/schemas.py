"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable and provide validation for
controller handlers and tests. Field names follow the JSON keys the
school apps already send (camelCase where the clients use it).
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional

from .models import DeviceType


class DeviceIn(BaseModel):
    """Payload for registering a notification device."""
    platform: DeviceType
    deviceIdentifier: str = Field(min_length=1, max_length=255)


class DeviceRemoveIn(BaseModel):
    """Payload for removing a device by its identifier."""
    deviceIdentifier: str = Field(min_length=1, max_length=255)


class DeviceOut(BaseModel):
    """A device as returned to its owner."""
    id: Optional[int]
    userId: Optional[int]
    platform: int
    deviceIdentifier: str
    added: Optional[str]
    verified: bool = True


class LessonImportRow(BaseModel):
    """One entry of a bulk lesson import.

    `lesson` is the period index and `day` the weekday number, both
    stored as sent. Numeric grades, groups and rooms (`10`, `101`) are
    taken as strings. `teacher` is only used when the row's course does
    not exist yet.
    """
    model_config = ConfigDict(coerce_numbers_to_str=True)

    subject: str = Field(min_length=1)
    grade: str = Field(min_length=1)
    group: str = Field(min_length=1)
    lesson: int
    day: int
    room: Optional[str] = None
    teacher: Optional[str] = None


class CourseQuery(BaseModel):
    """Body of the course lookup by teacher, weekday and period."""
    teacher: str
    weekday: int
    lesson: int
