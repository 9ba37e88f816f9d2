from pydantic import BaseModel

from yaymon.models import EnrollmentStatus


class EnrollmentResponse(BaseModel):
    id: str
    student_id: str
    course_id: str
    status: EnrollmentStatus


class EnrollmentDetails(EnrollmentResponse):
    student_name: str
    course_title: str
