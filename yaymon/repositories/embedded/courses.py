from collections import defaultdict
from typing import List, Optional

from sqlmodel import Session, col, select

from yaymon.errors import NotFound
from yaymon.models import Course, CourseStatus, Lesson
from yaymon.repositories.base import BlobStore, CourseRepository, IdentityDirectory, LessonMutation
from yaymon.repositories.embedded.handle import EmbeddedHandle
from yaymon.repositories.live import LiveQueries
from yaymon.schemas import CourseResponse, LessonResponse


def _lesson_response(row: Lesson) -> LessonResponse:
    return LessonResponse.model_validate(row.model_dump())


def _course_response(course: Course, lessons: List[Lesson]) -> CourseResponse:
    return CourseResponse(**course.model_dump(), lessons=[_lesson_response(row) for row in lessons])


def _lesson_rows(session: Session, course_id: str) -> List[Lesson]:
    statement = select(Lesson).where(Lesson.course_id == course_id).order_by(Lesson.position)
    return list(session.exec(statement).all())


def list_courses(session: Session, *criteria) -> List[CourseResponse]:
    """Courses matching `criteria` with their lessons, using one query per table."""
    statement = select(Course)
    if criteria:
        statement = statement.where(*criteria)
    courses = session.exec(statement).all()
    if not courses:
        return []
    lessons = defaultdict(list)
    rows = session.exec(
        select(Lesson)
        .where(col(Lesson.course_id).in_([c.id for c in courses]))
        .order_by(Lesson.course_id, Lesson.position)
    ).all()
    for row in rows:
        lessons[row.course_id].append(row)
    return [_course_response(course, lessons[course.id]) for course in courses]


class EmbeddedCourseRepository(CourseRepository):
    """Courses in the `course` table; lessons are rows carrying a dense `position`."""

    def __init__(self, handle: EmbeddedHandle, blobs: BlobStore, live: LiveQueries, identity: IdentityDirectory):
        super().__init__(blobs, live, identity)
        self._handle = handle

    async def get_by_id(self, course_id: str) -> Optional[CourseResponse]:
        def work(session: Session) -> Optional[CourseResponse]:
            course = session.get(Course, course_id)
            if course is None:
                return None
            return _course_response(course, _lesson_rows(session, course_id))

        return await self._handle.run(work)

    async def list_all(self) -> List[CourseResponse]:
        return await self._handle.run(list_courses)

    async def list_by_teacher(self, teacher_id: str) -> List[CourseResponse]:
        return await self._handle.run(lambda session: list_courses(session, Course.teacher_id == teacher_id))

    async def _list_by_status(self, status: CourseStatus) -> List[CourseResponse]:
        return await self._handle.run(lambda session: list_courses(session, Course.status == status))

    async def _insert_course(self, course: CourseResponse) -> None:
        def work(session: Session) -> None:
            session.add(Course(**course.model_dump(exclude={"lessons"})))

        await self._handle.run(work)

    async def _update_course(self, course_id: str, changes: dict) -> CourseResponse:
        def work(session: Session) -> CourseResponse:
            course = session.get(Course, course_id)
            if course is None:
                raise NotFound(f"Course {course_id} not found")
            for key, value in changes.items():
                setattr(course, key, value)
            session.add(course)
            session.flush()
            return _course_response(course, _lesson_rows(session, course_id))

        return await self._handle.run(work)

    async def _delete_course(self, course_id: str) -> None:
        def work(session: Session) -> None:
            course = session.get(Course, course_id)
            if course is None:
                raise NotFound(f"Course {course_id} not found")
            for row in _lesson_rows(session, course_id):
                session.delete(row)
            session.flush()
            session.delete(course)

        await self._handle.run(work)

    async def _mutate_lessons(self, course_id: str, mutation: LessonMutation) -> List[LessonResponse]:
        def work(session: Session) -> List[LessonResponse]:
            if session.get(Course, course_id) is None:
                raise NotFound(f"Course {course_id} not found")
            rows = _lesson_rows(session, course_id)
            updated = mutation([_lesson_response(row) for row in rows])

            by_id = {row.id: row for row in rows}
            kept = {lesson.id for lesson in updated}
            # park surviving rows on negative positions so (course_id, position) stays unique mid-update
            for index, row in enumerate(rows):
                if row.id in kept:
                    row.position = -(index + 1)
                else:
                    session.delete(row)
            session.flush()

            for position, lesson in enumerate(updated):
                fields = lesson.model_dump()
                row = by_id.get(lesson.id)
                if row is None:
                    session.add(Lesson(course_id=course_id, position=position, **fields))
                    continue
                for key, value in fields.items():
                    setattr(row, key, value)
                row.position = position
                session.add(row)
            session.flush()
            return updated

        return await self._handle.run(work)
