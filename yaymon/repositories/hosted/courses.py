from typing import Dict, List, Optional

from pymongo import ReturnDocument
from pymongo.database import Database

from yaymon.errors import NotFound
from yaymon.models import CourseStatus
from yaymon.repositories.base import BlobStore, CourseRepository, IdentityDirectory, LessonMutation
from yaymon.repositories.hosted.handle import COURSES, HostedHandle, from_document, lesson_document, to_document
from yaymon.repositories.live import LiveQueries
from yaymon.schemas import CourseResponse, LessonResponse


def _stored_lessons(document: dict) -> List[dict]:
    return sorted(document.get("lessons", []), key=lambda lesson: lesson["order"])


def course_from_document(document: Optional[dict]) -> Optional[CourseResponse]:
    if document is None:
        return None
    data = from_document(document)
    data["lessons"] = _stored_lessons(document)
    return CourseResponse.model_validate(data)


def assign_orders(lessons: List[LessonResponse], previous: Dict[str, int]) -> List[dict]:
    """
    Gives every lesson an `order` value.

    Lessons keep the value they had while the sequence stays strictly
    increasing (so removals leave gaps rather than rewriting every lesson);
    new lessons go after the largest value used so far. Any other change,
    such as a reorder, renumbers the whole sequence from zero.
    """
    next_order = max(previous.values(), default=-1) + 1
    orders = []
    for lesson in lessons:
        if lesson.id in previous:
            orders.append(previous[lesson.id])
        else:
            orders.append(next_order)
            next_order += 1
    if any(a >= b for a, b in zip(orders, orders[1:])):
        orders = list(range(len(lessons)))
    return [lesson_document(lesson, order) for lesson, order in zip(lessons, orders)]


class HostedCourseRepository(CourseRepository):
    """Course documents with their lessons nested as an array ordered by `order`."""

    def __init__(self, handle: HostedHandle, blobs: BlobStore, live: LiveQueries, identity: IdentityDirectory):
        super().__init__(blobs, live, identity)
        self._handle = handle

    async def _find(self, query: dict) -> List[CourseResponse]:
        return await self._handle.run(lambda db: [course_from_document(d) for d in db[COURSES].find(query)])

    async def get_by_id(self, course_id: str) -> Optional[CourseResponse]:
        return await self._handle.run(lambda db: course_from_document(db[COURSES].find_one({"_id": course_id})))

    async def list_all(self) -> List[CourseResponse]:
        return await self._find({})

    async def list_by_teacher(self, teacher_id: str) -> List[CourseResponse]:
        return await self._find({"teacher_id": teacher_id})

    async def _list_by_status(self, status: CourseStatus) -> List[CourseResponse]:
        return await self._find({"status": status.value})

    async def _insert_course(self, course: CourseResponse) -> None:
        document = to_document(course.model_dump(exclude={"lessons"}))
        document["lessons"] = [lesson_document(lesson, order) for order, lesson in enumerate(course.lessons)]
        await self._handle.run(lambda db: db[COURSES].insert_one(document))

    async def _update_course(self, course_id: str, changes: dict) -> CourseResponse:
        def work(db: Database) -> CourseResponse:
            if changes:
                document = db[COURSES].find_one_and_update(
                    {"_id": course_id},
                    {"$set": to_document(changes)},
                    return_document=ReturnDocument.AFTER,
                )
            else:
                document = db[COURSES].find_one({"_id": course_id})
            if document is None:
                raise NotFound(f"Course {course_id} not found")
            return course_from_document(document)

        return await self._handle.run(work)

    async def _delete_course(self, course_id: str) -> None:
        # lessons live inside the course document and go with it
        def work(db: Database) -> None:
            if db[COURSES].delete_one({"_id": course_id}).deleted_count == 0:
                raise NotFound(f"Course {course_id} not found")

        await self._handle.run(work)

    async def _mutate_lessons(self, course_id: str, mutation: LessonMutation) -> List[LessonResponse]:
        def work(db: Database) -> List[LessonResponse]:
            document = db[COURSES].find_one({"_id": course_id})
            if document is None:
                raise NotFound(f"Course {course_id} not found")
            stored = _stored_lessons(document)
            updated = mutation([LessonResponse.model_validate(lesson) for lesson in stored])
            previous = {lesson["id"]: lesson["order"] for lesson in stored}
            # one single-document write: either every lesson takes its new order or none does
            result = db[COURSES].update_one(
                {"_id": course_id},
                {"$set": {"lessons": assign_orders(updated, previous)}},
            )
            if result.matched_count == 0:
                raise NotFound(f"Course {course_id} not found")
            return updated

        return await self._handle.run(work)
