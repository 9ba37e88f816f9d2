from typing import List, Optional, Tuple

from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from yaymon.errors import AlreadyEnrolled, NotFound
from yaymon.models import EnrollmentStatus
from yaymon.repositories.base import EnrollmentLedger
from yaymon.repositories.hosted.courses import course_from_document
from yaymon.repositories.hosted.handle import COURSES, ENROLLMENTS, USERS, HostedHandle, from_document, to_document
from yaymon.repositories.live import LiveQueries
from yaymon.schemas import CourseResponse, EnrollmentResponse, UserResponse


def _enrollment(document: Optional[dict]) -> Optional[EnrollmentResponse]:
    if document is None:
        return None
    return EnrollmentResponse.model_validate(from_document(document))


class HostedEnrollmentLedger(EnrollmentLedger):

    def __init__(self, handle: HostedHandle, live: LiveQueries):
        super().__init__(live)
        self._handle = handle

    async def get_for_student_and_course(self, student_id: str, course_id: str) -> Optional[EnrollmentResponse]:
        return await self._handle.run(
            lambda db: _enrollment(db[ENROLLMENTS].find_one({"student_id": student_id, "course_id": course_id}))
        )

    async def list_all(self) -> List[EnrollmentResponse]:
        return await self._handle.run(lambda db: [_enrollment(d) for d in db[ENROLLMENTS].find({})])

    async def _insert(self, enrollment: EnrollmentResponse) -> None:
        def work(db: Database) -> None:
            try:
                db[ENROLLMENTS].insert_one(to_document(enrollment.model_dump()))
            except DuplicateKeyError as e:
                raise AlreadyEnrolled(
                    f"Student {enrollment.student_id} already enrolled or pending in {enrollment.course_id}"
                ) from e

        await self._handle.run(work)

    async def _set_status(self, enrollment_id: str, status: EnrollmentStatus) -> EnrollmentResponse:
        def work(db: Database) -> EnrollmentResponse:
            document = db[ENROLLMENTS].find_one_and_update(
                {"_id": enrollment_id},
                {"$set": {"status": status.value}},
                return_document=ReturnDocument.AFTER,
            )
            if document is None:
                raise NotFound(f"Enrollment {enrollment_id} not found")
            return _enrollment(document)

        return await self._handle.run(work)

    async def _snapshot(self) -> Tuple[List[EnrollmentResponse], List[UserResponse], List[CourseResponse]]:
        def work(db: Database):
            enrollments = [_enrollment(d) for d in db[ENROLLMENTS].find({})]
            users = [UserResponse.model_validate(from_document(d)) for d in db[USERS].find({})]
            courses = [course_from_document(d) for d in db[COURSES].find({})]
            return enrollments, users, courses

        return await self._handle.run(work)
