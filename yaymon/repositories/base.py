"""
Backend-independent contract of the content repository.

Each abstract class holds the invariants and orchestration shared by every
backend (upload-before-link ordering, lesson ordering rules, join views,
session identity); backends only supply the storage primitives marked
abstract.
"""
import logging
from abc import ABC, abstractmethod
from typing import Callable, Iterable, List, Optional, Tuple, Union

from yaymon.auth.auth_handler import get_password_hash, verify_password
from yaymon.errors import InvalidCredentials, InvalidOrder, InvalidRating, NotFound, RepositoryError
from yaymon.models import CourseStatus, EnrollmentStatus, Role
from yaymon.repositories.lesson_media import ATTACHMENT, VIDEO, MediaSlot
from yaymon.repositories.live import LiveQueries
from yaymon.schemas import (
    CourseCreateRequest,
    CourseResponse,
    CourseUpdateRequest,
    CourseWithTeacher,
    EnrollmentDetails,
    EnrollmentResponse,
    FileUpload,
    LessonPayload,
    LessonResponse,
    MediaAction,
    MediaUpdate,
    ReviewResponse,
    UserResponse,
    UserUpdateRequest,
)
from yaymon.schemas.media import is_store_ref, ref_path
from yaymon.utils.utils import (
    default_profile_photo,
    make_course_image_path,
    make_course_prefix,
    make_lesson_media_path,
    make_lesson_prefix,
    make_user_photo_path,
    new_id,
)
from yaymon import views

logger = logging.getLogger(__name__)

AuthListener = Callable[[Optional[UserResponse]], None]
LessonMutation = Callable[[List[LessonResponse]], List[LessonResponse]]


class BlobStore(ABC):
    """Path-addressed binary storage returning opaque `store://` references."""

    @abstractmethod
    async def put(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        """Stores bytes at `path` (last write wins). Raises MediaUploadFailed."""

    @abstractmethod
    async def read(self, ref: str) -> bytes:
        """Returns the stored bytes. Raises NotFound."""

    @abstractmethod
    async def delete(self, ref: str) -> None:
        ...

    @abstractmethod
    async def delete_prefix(self, prefix: str) -> int:
        ...

    @abstractmethod
    async def _resolve_path(self, path: str) -> str:
        ...

    async def resolve(self, ref: Optional[str]) -> Optional[str]:
        """
        Turns a media reference into a URL the caller can display.

        External URLs are returned unchanged. Store references are resolved by
        the backend; the result must not be written back into any record.
        """
        if not ref:
            return None
        if is_store_ref(ref):
            return await self._resolve_path(ref_path(ref))
        return ref

    async def upload(self, path: str, upload: FileUpload) -> str:
        return await self.put(path, upload.data, upload.content_type)

    async def discard(self, refs: Iterable[Optional[str]]) -> None:
        """Best-effort removal of store-owned blobs that records no longer point at."""
        for ref in refs:
            if not is_store_ref(ref):
                continue
            try:
                await self.delete(ref)
            except RepositoryError as e:
                logger.warning(f"Could not delete unreferenced blob {ref}: {e}")

    async def discard_prefix(self, prefix: str) -> None:
        try:
            removed = await self.delete_prefix(prefix)
            logger.debug(f"Removed {removed} blobs under {prefix}")
        except RepositoryError as e:
            logger.warning(f"Could not delete blobs under {prefix}: {e}")


class IdentityDirectory(ABC):
    """User records, credential checks and the current-session identity."""

    def __init__(self, blobs: BlobStore, live: LiveQueries):
        self._blobs = blobs
        self._live = live
        self._current: Optional[UserResponse] = None
        self._listeners: List[AuthListener] = []

    # --- storage primitives ---

    @abstractmethod
    async def get(self, user_id: str) -> Optional[UserResponse]:
        ...

    @abstractmethod
    async def list_all(self) -> List[UserResponse]:
        ...

    @abstractmethod
    async def _find_credentials(self, email: str) -> Optional[Tuple[UserResponse, str]]:
        """Returns the user with that exact email and its password hash."""

    @abstractmethod
    async def _insert(self, user: UserResponse, password_hash: str) -> UserResponse:
        """Inserts atomically against the unique email index. Raises DuplicateEmail."""

    @abstractmethod
    async def _apply(self, user_id: str, changes: dict) -> UserResponse:
        """Raises NotFound or DuplicateEmail."""

    @abstractmethod
    async def _delete(self, user_id: str) -> None:
        """Raises NotFound."""

    # --- session ---

    @property
    def current_user(self) -> Optional[UserResponse]:
        return self._current

    def on_auth_state_changed(self, listener: AuthListener) -> Callable[[], None]:
        self._listeners.append(listener)
        listener(self._current)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def sign_out(self) -> None:
        if self._current is not None:
            logger.info(f"User {self._current.id} signed out")
            self._set_current(None)

    def _set_current(self, user: Optional[UserResponse]) -> None:
        self._current = user
        for listener in list(self._listeners):
            try:
                listener(user)
            except Exception as e:
                logger.error(f"Auth state listener raised: {e}", exc_info=True)

    # --- operations ---

    async def verify_credentials(self, email: str, password: str) -> UserResponse:
        """Checks an email and password pair without touching the session."""
        found = await self._find_credentials(email)
        if found is None or not verify_password(password, found[1]):
            raise InvalidCredentials("Invalid credentials")
        return found[0]

    async def authenticate(self, email: str, password: str) -> UserResponse:
        user = await self.verify_credentials(email, password)
        self._set_current(user)
        logger.info(f"User {user.id} signed in")
        return user

    async def register(self, name: str, email: str, password: str) -> UserResponse:
        return await self.create(name, email, password, Role.student)

    async def create(self, name: str, email: str, password: str, role: Role = Role.student) -> UserResponse:
        user_id = new_id("user")
        user = UserResponse(
            id=user_id,
            email=email,
            name=name,
            role=role,
            profile_photo_ref=default_profile_photo(user_id),
        )
        created = await self._insert(user, get_password_hash(password))
        logger.info(f"Created {role.value} {created.id}")
        await self._live.notify()
        return created

    async def update(self, user_id: str, fields: Union[UserUpdateRequest, dict, None] = None,
                     photo: Optional[FileUpload] = None) -> UserResponse:
        if not isinstance(fields, UserUpdateRequest):
            fields = UserUpdateRequest(**(fields or {}))
        existing = await self.get(user_id)
        if existing is None:
            raise NotFound(f"User {user_id} not found")

        changes = fields.model_dump(exclude_none=True)
        password = changes.pop("password", None)
        if password:
            changes["password"] = get_password_hash(password)

        replaced_photo = None
        if photo is not None:
            # the photo must be stored before the record points at it
            ref = await self._blobs.upload(make_user_photo_path(user_id, photo.file_name), photo)
            if existing.profile_photo_ref != ref:
                replaced_photo = existing.profile_photo_ref
            changes["profile_photo_ref"] = ref

        user = await self._apply(user_id, changes)
        await self._blobs.discard([replaced_photo])
        if self._current is not None and self._current.id == user_id:
            self._set_current(user)
        await self._live.notify()
        return user

    async def remove(self, user_id: str) -> None:
        await self._delete(user_id)
        logger.info(f"Removed user {user_id}")
        await self._blobs.discard_prefix(f"users/{user_id}/")
        if self._current is not None and self._current.id == user_id:
            self.sign_out()
        await self._live.notify()


class CourseRepository(ABC):
    """Course aggregates: a course and its ordered lessons."""

    def __init__(self, blobs: BlobStore, live: LiveQueries, identity: IdentityDirectory):
        self._blobs = blobs
        self._live = live
        self._identity = identity

    # --- storage primitives ---

    @abstractmethod
    async def get_by_id(self, course_id: str) -> Optional[CourseResponse]:
        ...

    @abstractmethod
    async def list_all(self) -> List[CourseResponse]:
        ...

    @abstractmethod
    async def list_by_teacher(self, teacher_id: str) -> List[CourseResponse]:
        ...

    @abstractmethod
    async def _list_by_status(self, status: CourseStatus) -> List[CourseResponse]:
        ...

    @abstractmethod
    async def _insert_course(self, course: CourseResponse) -> None:
        ...

    @abstractmethod
    async def _update_course(self, course_id: str, changes: dict) -> CourseResponse:
        """Raises NotFound."""

    @abstractmethod
    async def _delete_course(self, course_id: str) -> None:
        """Deletes the course and all of its lessons in one write. Raises NotFound."""

    @abstractmethod
    async def _mutate_lessons(self, course_id: str, mutation: LessonMutation) -> List[LessonResponse]:
        """
        Reads the ordered lessons, applies `mutation` and stores its result
        atomically. An exception raised by `mutation` aborts without writing.
        Raises NotFound when the course is absent.
        """

    # --- courses ---

    async def list_published(self) -> List[CourseResponse]:
        return await self._list_by_status(CourseStatus.published)

    async def list_published_with_teacher(self) -> List[CourseWithTeacher]:
        return views.courses_with_teacher(await self.list_published(), await self._identity.list_all())

    async def get_with_teacher(self, course_id: str) -> Optional[CourseWithTeacher]:
        course = await self.get_by_id(course_id)
        if course is None:
            return None
        return views.courses_with_teacher([course], await self._identity.list_all())[0]

    async def create(self, payload: CourseCreateRequest, teacher_id: str) -> CourseResponse:
        course_id = new_id("course")
        image_ref = None
        if payload.image is not None:
            image_ref = await self._blobs.upload(make_course_image_path(course_id, payload.image.file_name),
                                                 payload.image)
        course = CourseResponse(
            id=course_id,
            title=payload.title,
            description=payload.description,
            teacher_id=teacher_id,
            status=payload.status,
            image_ref=image_ref,
            lessons=[],
        )
        await self._insert_course(course)
        logger.info(f"Teacher {teacher_id} created course {course_id}")
        await self._live.notify()
        return course

    async def update(self, course_id: str, payload: CourseUpdateRequest) -> CourseResponse:
        existing = await self.get_by_id(course_id)
        if existing is None:
            raise NotFound(f"Course {course_id} not found")

        changes = payload.field_changes()
        replaced_image = None
        if payload.image is not None:
            ref = await self._blobs.upload(make_course_image_path(course_id, payload.image.file_name), payload.image)
            if existing.image_ref != ref:
                replaced_image = existing.image_ref
            changes["image_ref"] = ref

        course = await self._update_course(course_id, changes)
        await self._blobs.discard([replaced_image])
        await self._live.notify()
        return course

    async def delete(self, course_id: str) -> None:
        await self._delete_course(course_id)
        logger.info(f"Deleted course {course_id} with its lessons")
        await self._blobs.discard_prefix(make_course_prefix(course_id))
        await self._live.notify()

    # --- lessons ---

    async def add_lesson(self, course_id: str, payload: LessonPayload) -> LessonResponse:
        if await self.get_by_id(course_id) is None:
            raise NotFound(f"Course {course_id} not found")

        lesson = LessonResponse(
            id=new_id("lesson"),
            title=payload.title,
            content=payload.content,
            duration=payload.duration,
        )
        try:
            await self._apply_media(course_id, lesson, VIDEO, payload.video)
            await self._apply_media(course_id, lesson, ATTACHMENT, payload.attachment)
            await self._mutate_lessons(course_id, lambda lessons: lessons + [lesson])
        except RepositoryError:
            await self._discard_new_media(lesson, previous=None)
            raise
        await self._live.notify()
        return lesson

    async def update_lesson(self, course_id: str, lesson_id: str, payload: LessonPayload) -> LessonResponse:
        course = await self.get_by_id(course_id)
        if course is None:
            raise NotFound(f"Course {course_id} not found")
        existing = next((lesson for lesson in course.lessons if lesson.id == lesson_id), None)
        if existing is None:
            raise NotFound(f"Lesson {lesson_id} not found in course {course_id}")

        lesson = existing.model_copy(update={
            "title": payload.title,
            "content": payload.content,
            "duration": payload.duration,
        })
        def replace(lessons: List[LessonResponse]) -> List[LessonResponse]:
            _require_lesson(lessons, course_id, lesson_id)
            return [lesson if current.id == lesson_id else current for current in lessons]

        try:
            replaced = [
                await self._apply_media(course_id, lesson, VIDEO, payload.video),
                await self._apply_media(course_id, lesson, ATTACHMENT, payload.attachment),
            ]
            await self._mutate_lessons(course_id, replace)
        except RepositoryError:
            await self._discard_new_media(lesson, previous=existing)
            raise
        await self._blobs.discard(replaced)
        await self._live.notify()
        return lesson

    async def delete_lesson(self, course_id: str, lesson_id: str) -> None:
        def remove(lessons: List[LessonResponse]) -> List[LessonResponse]:
            _require_lesson(lessons, course_id, lesson_id)
            return [lesson for lesson in lessons if lesson.id != lesson_id]

        await self._mutate_lessons(course_id, remove)
        await self._blobs.discard_prefix(make_lesson_prefix(course_id, lesson_id))
        await self._live.notify()

    async def reorder_lessons(self, course_id: str, ordered_lesson_ids: List[str]) -> List[LessonResponse]:
        ordered_lesson_ids = list(ordered_lesson_ids)

        def reorder(lessons: List[LessonResponse]) -> List[LessonResponse]:
            by_id = {lesson.id: lesson for lesson in lessons}
            if len(ordered_lesson_ids) != len(by_id) or set(ordered_lesson_ids) != set(by_id):
                missing = sorted(set(by_id) - set(ordered_lesson_ids))
                unknown = sorted(set(ordered_lesson_ids) - set(by_id))
                raise InvalidOrder(
                    f"Lesson order for course {course_id} must be a permutation of its lessons "
                    f"(missing={missing}, unknown={unknown}, given={len(ordered_lesson_ids)})"
                )
            return [by_id[lesson_id] for lesson_id in ordered_lesson_ids]

        lessons = await self._mutate_lessons(course_id, reorder)
        await self._live.notify()
        return lessons

    async def _apply_media(self, course_id: str, lesson: LessonResponse, slot: MediaSlot,
                           update: MediaUpdate) -> Optional[str]:
        """Applies one tagged slot update; returns the blob reference it made obsolete."""
        previous = slot.stored_ref(lesson)
        if update.action == MediaAction.keep:
            return None
        if update.action == MediaAction.remove:
            slot.clear(lesson)
        elif update.action == MediaAction.file:
            path = make_lesson_media_path(course_id, lesson.id, slot.name, update.upload.file_name)
            ref = await self._blobs.upload(path, update.upload)
            slot.set_file(lesson, ref, update.upload)
        elif update.action == MediaAction.url:
            slot.set_url(lesson, update.url)
        if previous and previous != slot.stored_ref(lesson):
            return previous
        return None

    async def _discard_new_media(self, lesson: LessonResponse, previous: Optional[LessonResponse]) -> None:
        """Deletes blobs uploaded for a lesson write that did not go through."""
        kept = {slot.stored_ref(previous) for slot in (VIDEO, ATTACHMENT)} if previous else set()
        uploaded = [slot.stored_ref(lesson) for slot in (VIDEO, ATTACHMENT)]
        await self._blobs.discard([ref for ref in uploaded if ref not in kept])


def _require_lesson(lessons: List[LessonResponse], course_id: str, lesson_id: str) -> None:
    if not any(lesson.id == lesson_id for lesson in lessons):
        raise NotFound(f"Lesson {lesson_id} not found in course {course_id}")


class EnrollmentLedger(ABC):
    """Student-to-course enrollments and their approval status."""

    def __init__(self, live: LiveQueries):
        self._live = live

    @abstractmethod
    async def get_for_student_and_course(self, student_id: str, course_id: str) -> Optional[EnrollmentResponse]:
        ...

    @abstractmethod
    async def list_all(self) -> List[EnrollmentResponse]:
        ...

    @abstractmethod
    async def _insert(self, enrollment: EnrollmentResponse) -> None:
        """Inserts against the (student, course) unique index. Raises AlreadyEnrolled."""

    @abstractmethod
    async def _set_status(self, enrollment_id: str, status: EnrollmentStatus) -> EnrollmentResponse:
        """Raises NotFound."""

    @abstractmethod
    async def _snapshot(self) -> Tuple[List[EnrollmentResponse], List[UserResponse], List[CourseResponse]]:
        """Enrollments, users and courses read together for the join views."""

    async def create(self, student_id: str, course_id: str) -> EnrollmentResponse:
        enrollment = EnrollmentResponse(
            id=new_id("enroll"),
            student_id=student_id,
            course_id=course_id,
            status=EnrollmentStatus.pending,
        )
        await self._insert(enrollment)
        logger.info(f"Student {student_id} requested enrollment in {course_id}")
        await self._live.notify()
        return enrollment

    async def set_status(self, enrollment_id: str, status: EnrollmentStatus) -> EnrollmentResponse:
        enrollment = await self._set_status(enrollment_id, EnrollmentStatus(status))
        logger.info(f"Enrollment {enrollment_id} is now {enrollment.status.value}")
        await self._live.notify()
        return enrollment

    async def list_all_with_display_names(self) -> List[EnrollmentDetails]:
        enrollments, users, courses = await self._snapshot()
        return views.enrollment_details(enrollments, users, courses)

    async def list_approved_courses_for_student(self, student_id: str) -> List[CourseWithTeacher]:
        enrollments, users, courses = await self._snapshot()
        return views.approved_courses_for_student(student_id, enrollments, courses, users)


class ReviewStore(ABC):
    """Append-only course reviews."""

    MIN_RATING = 1
    MAX_RATING = 5

    def __init__(self, live: LiveQueries):
        self._live = live

    @abstractmethod
    async def list_for_course(self, course_id: str) -> List[ReviewResponse]:
        ...

    @abstractmethod
    async def _insert(self, review: ReviewResponse) -> None:
        ...

    async def add(self, student_id: str, course_id: str, rating: int, comment: str = "") -> ReviewResponse:
        if isinstance(rating, bool) or not isinstance(rating, int) \
                or not self.MIN_RATING <= rating <= self.MAX_RATING:
            raise InvalidRating(f"Rating must be an integer from {self.MIN_RATING} to {self.MAX_RATING}, got {rating!r}")
        review = ReviewResponse(
            id=new_id("review"),
            student_id=student_id,
            course_id=course_id,
            rating=rating,
            comment=comment,
        )
        await self._insert(review)
        await self._live.notify()
        return review
