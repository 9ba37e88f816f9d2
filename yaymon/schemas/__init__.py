from .course_schema import (
    CourseCreateRequest,
    CourseResponse,
    CourseUpdateRequest,
    CourseWithTeacher,
    LessonPayload,
    LessonResponse,
)
from .enrollment_schema import EnrollmentDetails, EnrollmentResponse
from .media import FileUpload, MediaAction, MediaUpdate
from .review_schema import ReviewCreateRequest, ReviewResponse
from .user_schema import UserCreateRequest, UserResponse, UserUpdateRequest
from .token import Token
