from typing import List, Optional

from fastapi import APIRouter, Body, Depends, File, Form, HTTPException, UploadFile

from yaymon.api.deps import get_repositories, read_upload
from yaymon.auth.auth_handler import get_current_user
from yaymon.models import CourseStatus
from yaymon.repositories import Repositories
from yaymon.schemas import (
    CourseCreateRequest,
    CourseResponse,
    CourseUpdateRequest,
    CourseWithTeacher,
    LessonPayload,
    LessonResponse,
    UserResponse,
)

router = APIRouter(prefix="/courses", tags=["courses"])


@router.get("/", response_model=List[CourseWithTeacher])
async def list_published(repos: Repositories = Depends(get_repositories)):
    return await repos.courses.list_published_with_teacher()


@router.get("/all", response_model=List[CourseResponse])
async def list_all(repos: Repositories = Depends(get_repositories)):
    return await repos.courses.list_all()


@router.get("/teacher/{teacher_id}", response_model=List[CourseResponse])
async def list_by_teacher(teacher_id: str, repos: Repositories = Depends(get_repositories)):
    return await repos.courses.list_by_teacher(teacher_id)


@router.get("/{course_id}", response_model=CourseWithTeacher)
async def get_course(course_id: str, repos: Repositories = Depends(get_repositories)):
    course = await repos.courses.get_with_teacher(course_id)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")
    return course


@router.post("/", response_model=CourseResponse)
async def create_course(
        title: str = Form(...),
        description: str = Form(""),
        status: CourseStatus = Form(CourseStatus.draft),
        image: Optional[UploadFile] = File(None),
        current_user: UserResponse = Depends(get_current_user),
        repos: Repositories = Depends(get_repositories),
):
    payload = CourseCreateRequest(title=title, description=description, status=status,
                                  image=await read_upload(image))
    return await repos.courses.create(payload, current_user.id)


@router.patch("/{course_id}", response_model=CourseResponse)
async def update_course(
        course_id: str,
        title: Optional[str] = Form(None),
        description: Optional[str] = Form(None),
        status: Optional[CourseStatus] = Form(None),
        image: Optional[UploadFile] = File(None),
        repos: Repositories = Depends(get_repositories),
):
    payload = CourseUpdateRequest(title=title, description=description, status=status,
                                  image=await read_upload(image))
    return await repos.courses.update(course_id, payload)


@router.delete("/{course_id}", status_code=204)
async def delete_course(course_id: str, repos: Repositories = Depends(get_repositories)):
    await repos.courses.delete(course_id)


async def _lesson_payload(title, content, duration, video_url_input, video_file, video_removed,
                          attachment_url_input, attachment_file, attachment_removed) -> LessonPayload:
    return LessonPayload.from_form(
        title=title,
        content=content,
        duration=duration,
        video_url_input=video_url_input,
        video_file=await read_upload(video_file),
        video_removed=video_removed,
        attachment_url_input=attachment_url_input,
        attachment_file=await read_upload(attachment_file),
        attachment_removed=attachment_removed,
    )


@router.post("/{course_id}/lessons", response_model=LessonResponse)
async def add_lesson(
        course_id: str,
        title: str = Form(...),
        content: str = Form(""),
        duration: Optional[str] = Form(None),
        video_url_input: Optional[str] = Form(None),
        video_file: Optional[UploadFile] = File(None),
        video_removed: bool = Form(False),
        attachment_url_input: Optional[str] = Form(None),
        attachment_file: Optional[UploadFile] = File(None),
        attachment_removed: bool = Form(False),
        repos: Repositories = Depends(get_repositories),
):
    payload = await _lesson_payload(title, content, duration, video_url_input, video_file, video_removed,
                                    attachment_url_input, attachment_file, attachment_removed)
    return await repos.courses.add_lesson(course_id, payload)


@router.put("/{course_id}/lessons/order", response_model=List[LessonResponse])
async def reorder_lessons(course_id: str, lesson_ids: List[str] = Body(..., embed=True),
                          repos: Repositories = Depends(get_repositories)):
    return await repos.courses.reorder_lessons(course_id, lesson_ids)


@router.put("/{course_id}/lessons/{lesson_id}", response_model=LessonResponse)
async def update_lesson(
        course_id: str,
        lesson_id: str,
        title: str = Form(...),
        content: str = Form(""),
        duration: Optional[str] = Form(None),
        video_url_input: Optional[str] = Form(None),
        video_file: Optional[UploadFile] = File(None),
        video_removed: bool = Form(False),
        attachment_url_input: Optional[str] = Form(None),
        attachment_file: Optional[UploadFile] = File(None),
        attachment_removed: bool = Form(False),
        repos: Repositories = Depends(get_repositories),
):
    payload = await _lesson_payload(title, content, duration, video_url_input, video_file, video_removed,
                                    attachment_url_input, attachment_file, attachment_removed)
    return await repos.courses.update_lesson(course_id, lesson_id, payload)


@router.delete("/{course_id}/lessons/{lesson_id}", status_code=204)
async def delete_lesson(course_id: str, lesson_id: str, repos: Repositories = Depends(get_repositories)):
    await repos.courses.delete_lesson(course_id, lesson_id)
