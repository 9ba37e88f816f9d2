import uuid
from posixpath import basename


def new_id(kind: str) -> str:
    return f"{kind}-{uuid.uuid4().hex}"


def _safe_name(file_name: str) -> str:
    return basename(file_name.replace("\\", "/")) or "file"


def make_user_photo_path(user_id, file_name):
    return f"users/{user_id}/photo/{_safe_name(file_name)}"


def make_course_prefix(course_id):
    return f"courses/{course_id}/"


def make_course_image_path(course_id, file_name):
    return f"{make_course_prefix(course_id)}image/{_safe_name(file_name)}"


def make_lesson_prefix(course_id, lesson_id):
    return f"{make_course_prefix(course_id)}lessons/{lesson_id}/"


def make_lesson_media_path(course_id, lesson_id, slot, file_name):
    """slot: 'video' or 'attachment'"""
    return f"{make_lesson_prefix(course_id, lesson_id)}{slot}/{_safe_name(file_name)}"


def default_profile_photo(user_id):
    return f"https://picsum.photos/seed/{user_id}/200"
