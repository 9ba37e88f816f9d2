from enum import Enum
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class CourseStatus(str, Enum):
    draft = "Draft"
    published = "Published"
    archived = "Archived"


class Course(SQLModel, table=True):
    id: str = Field(primary_key=True)
    title: str
    description: str = ""
    teacher_id: str = Field(index=True)
    status: CourseStatus = Field(default=CourseStatus.draft)
    image_ref: Optional[str] = None


class Lesson(SQLModel, table=True):
    """A lesson row; `position` is its dense index inside the owning course."""
    __table_args__ = (UniqueConstraint("course_id", "position", name="uq_lesson_course_position"),)
    id: str = Field(primary_key=True)
    course_id: str = Field(foreign_key="course.id", index=True)
    position: int
    title: str
    content: str = ""
    video_url: Optional[str] = None
    video_ref: Optional[str] = None
    video_size: Optional[float] = None
    attachment_url: Optional[str] = None
    attachment_ref: Optional[str] = None
    file_name: Optional[str] = None
    file_size: Optional[float] = None
    duration: Optional[str] = None
