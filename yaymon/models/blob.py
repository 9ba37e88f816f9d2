from typing import Optional

from sqlalchemy import Column, LargeBinary
from sqlmodel import Field, SQLModel


class Blob(SQLModel, table=True):
    """Binary media stored inside the embedded database, keyed by storage path."""
    path: str = Field(primary_key=True)
    data: bytes = Field(sa_column=Column(LargeBinary, nullable=False))
    content_type: Optional[str] = None
    size: int = 0
