from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query

from yaymon.api.deps import get_repositories
from yaymon.auth.auth_handler import get_current_user
from yaymon.models import EnrollmentStatus
from yaymon.repositories import Repositories
from yaymon.schemas import CourseWithTeacher, EnrollmentDetails, EnrollmentResponse, UserResponse

router = APIRouter(prefix="/enrollments", tags=["enrollments"])


@router.post("/", response_model=EnrollmentResponse)
async def enroll(course_id: str = Body(..., embed=True),
                 current_user: UserResponse = Depends(get_current_user),
                 repos: Repositories = Depends(get_repositories)):
    return await repos.enrollments.create(current_user.id, course_id)


@router.get("/", response_model=List[EnrollmentDetails])
async def list_enrollments(repos: Repositories = Depends(get_repositories)):
    return await repos.enrollments.list_all_with_display_names()


@router.get("/mine", response_model=Optional[EnrollmentResponse])
async def get_my_enrollment(course_id: str = Query(...),
                            current_user: UserResponse = Depends(get_current_user),
                            repos: Repositories = Depends(get_repositories)):
    return await repos.enrollments.get_for_student_and_course(current_user.id, course_id)


@router.get("/mine/courses", response_model=List[CourseWithTeacher])
async def list_my_courses(current_user: UserResponse = Depends(get_current_user),
                          repos: Repositories = Depends(get_repositories)):
    return await repos.enrollments.list_approved_courses_for_student(current_user.id)


@router.patch("/{enrollment_id}", response_model=EnrollmentResponse)
async def set_status(enrollment_id: str, status: EnrollmentStatus = Body(..., embed=True),
                     repos: Repositories = Depends(get_repositories)):
    return await repos.enrollments.set_status(enrollment_id, status)
