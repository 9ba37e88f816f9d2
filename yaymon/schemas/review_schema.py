from pydantic import BaseModel


class ReviewCreateRequest(BaseModel):
    course_id: str
    rating: int
    comment: str = ""


class ReviewResponse(BaseModel):
    id: str
    student_id: str
    course_id: str
    rating: int
    comment: str = ""
