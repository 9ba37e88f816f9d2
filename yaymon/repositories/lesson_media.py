from dataclasses import dataclass
from typing import Optional

from yaymon.schemas import FileUpload, LessonResponse


@dataclass(frozen=True)
class MediaSlot:
    """Field names making up one media slot of a lesson."""
    name: str
    url_field: str
    ref_field: str
    size_field: str
    name_field: Optional[str] = None

    def clear(self, lesson: LessonResponse) -> None:
        setattr(lesson, self.url_field, None)
        self._clear_file_fields(lesson)

    def set_file(self, lesson: LessonResponse, ref: str, upload: FileUpload) -> None:
        setattr(lesson, self.url_field, None)
        setattr(lesson, self.ref_field, ref)
        setattr(lesson, self.size_field, upload.size_mb)
        if self.name_field:
            setattr(lesson, self.name_field, upload.file_name)

    def set_url(self, lesson: LessonResponse, url: str) -> None:
        self._clear_file_fields(lesson)
        setattr(lesson, self.url_field, url)

    def stored_ref(self, lesson: LessonResponse) -> Optional[str]:
        return getattr(lesson, self.ref_field)

    def _clear_file_fields(self, lesson: LessonResponse) -> None:
        setattr(lesson, self.ref_field, None)
        setattr(lesson, self.size_field, None)
        if self.name_field:
            setattr(lesson, self.name_field, None)


VIDEO = MediaSlot("video", "video_url", "video_ref", "video_size")
ATTACHMENT = MediaSlot("attachment", "attachment_url", "attachment_ref", "file_size", "file_name")
