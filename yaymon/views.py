"""
Read-side joins computed on the client from repository snapshots.

Nothing here is persisted or cached: every call recomputes from the lists it
is given, so callers always see current repository state.
"""
from typing import Iterable, List

from yaymon.models import EnrollmentStatus, Role
from yaymon.schemas import (
    CourseResponse,
    CourseWithTeacher,
    EnrollmentDetails,
    EnrollmentResponse,
    UserResponse,
)

UNKNOWN_TEACHER = "Unknown"
UNKNOWN_STUDENT = "Unknown Student"
UNKNOWN_COURSE = "Unknown Course"


def courses_with_teacher(courses: Iterable[CourseResponse],
                         users: Iterable[UserResponse]) -> List[CourseWithTeacher]:
    teachers = {u.id: u for u in users if u.role == Role.teacher}
    joined = []
    for course in courses:
        teacher = teachers.get(course.teacher_id)
        joined.append(CourseWithTeacher(
            **course.model_dump(),
            teacher_name=teacher.name if teacher else UNKNOWN_TEACHER,
            teacher_photo_ref=teacher.profile_photo_ref if teacher else None,
        ))
    return joined


def enrollment_details(enrollments: Iterable[EnrollmentResponse],
                       users: Iterable[UserResponse],
                       courses: Iterable[CourseResponse]) -> List[EnrollmentDetails]:
    names = {u.id: u.name for u in users}
    titles = {c.id: c.title for c in courses}
    return [
        EnrollmentDetails(
            **e.model_dump(),
            student_name=names.get(e.student_id) or UNKNOWN_STUDENT,
            course_title=titles.get(e.course_id) or UNKNOWN_COURSE,
        )
        for e in enrollments
    ]


def approved_courses_for_student(student_id: str,
                                 enrollments: Iterable[EnrollmentResponse],
                                 courses: Iterable[CourseResponse],
                                 users: Iterable[UserResponse]) -> List[CourseWithTeacher]:
    approved = {
        e.course_id for e in enrollments
        if e.student_id == student_id and e.status == EnrollmentStatus.approved
    }
    return courses_with_teacher([c for c in courses if c.id in approved], users)
