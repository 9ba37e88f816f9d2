from sqlmodel import Field, SQLModel


class Review(SQLModel, table=True):
    id: str = Field(primary_key=True)
    student_id: str
    course_id: str = Field(index=True)
    rating: int
    comment: str = ""
