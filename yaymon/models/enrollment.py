from enum import Enum

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class EnrollmentStatus(str, Enum):
    pending = "Pending"
    approved = "Approved"
    rejected = "Rejected"


class Enrollment(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("student_id", "course_id", name="uq_enrollment_student_course"),)
    id: str = Field(primary_key=True)
    student_id: str = Field(index=True)
    course_id: str = Field(index=True)
    status: EnrollmentStatus = Field(default=EnrollmentStatus.pending)
