from .blob import Blob
from .course import Course, CourseStatus, Lesson
from .enrollment import Enrollment, EnrollmentStatus
from .review import Review
from .user import Role, User

__all__ = [
    "Blob",
    "Course",
    "CourseStatus",
    "Enrollment",
    "EnrollmentStatus",
    "Lesson",
    "Review",
    "Role",
    "User",
]
