from enum import Enum
from typing import Optional

from sqlmodel import Field, SQLModel


class Role(str, Enum):
    admin = "Admin"
    teacher = "Teacher"
    student = "Student"


class User(SQLModel, table=True):
    """User model represents a directory entry in the embedded database."""
    id: str = Field(primary_key=True)
    email: str = Field(unique=True, index=True)
    name: str
    password: str = Field(exclude=True)
    role: Role = Field(default=Role.student)
    profile_photo_ref: Optional[str] = None
