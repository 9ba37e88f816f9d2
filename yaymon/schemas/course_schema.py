from typing import List, Optional

from pydantic import BaseModel, Field

from yaymon.models import CourseStatus
from yaymon.schemas.media import FileUpload, MediaUpdate


class CourseCreateRequest(BaseModel):
    title: str
    description: str = ""
    status: CourseStatus = CourseStatus.draft
    image: Optional[FileUpload] = None


class CourseUpdateRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[CourseStatus] = None
    image: Optional[FileUpload] = None

    def field_changes(self) -> dict:
        return self.model_dump(exclude={"image"}, exclude_none=True)


class LessonPayload(BaseModel):
    title: str
    content: str = ""
    duration: Optional[str] = None
    video: MediaUpdate = Field(default_factory=MediaUpdate)
    attachment: MediaUpdate = Field(default_factory=MediaUpdate)

    @classmethod
    def from_form(
            cls,
            title: str,
            content: str = "",
            duration: Optional[str] = None,
            video_url_input: Optional[str] = None,
            video_file: Optional[FileUpload] = None,
            video_removed: bool = False,
            attachment_url_input: Optional[str] = None,
            attachment_file: Optional[FileUpload] = None,
            attachment_removed: bool = False,
    ) -> "LessonPayload":
        return cls(
            title=title,
            content=content,
            duration=duration,
            video=MediaUpdate.from_form(video_removed, video_file, video_url_input),
            attachment=MediaUpdate.from_form(attachment_removed, attachment_file, attachment_url_input),
        )


class LessonResponse(BaseModel):
    id: str
    title: str
    content: str = ""
    video_url: Optional[str] = None
    video_ref: Optional[str] = None
    video_size: Optional[float] = None
    attachment_url: Optional[str] = None
    attachment_ref: Optional[str] = None
    file_name: Optional[str] = None
    file_size: Optional[float] = None
    duration: Optional[str] = None


class CourseResponse(BaseModel):
    id: str
    title: str
    description: str = ""
    teacher_id: str
    status: CourseStatus
    image_ref: Optional[str] = None
    lessons: List[LessonResponse] = []


class CourseWithTeacher(CourseResponse):
    teacher_name: str
    teacher_photo_ref: Optional[str] = None
