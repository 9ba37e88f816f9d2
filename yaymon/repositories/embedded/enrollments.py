from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from yaymon.errors import AlreadyEnrolled, NotFound
from yaymon.models import Enrollment, EnrollmentStatus, User
from yaymon.repositories.base import EnrollmentLedger
from yaymon.repositories.embedded.courses import list_courses
from yaymon.repositories.embedded.handle import EmbeddedHandle
from yaymon.repositories.live import LiveQueries
from yaymon.schemas import CourseResponse, EnrollmentResponse, UserResponse


def _enrollment_response(record: Optional[Enrollment]) -> Optional[EnrollmentResponse]:
    if record is None:
        return None
    return EnrollmentResponse.model_validate(record.model_dump())


class EmbeddedEnrollmentLedger(EnrollmentLedger):

    def __init__(self, handle: EmbeddedHandle, live: LiveQueries):
        super().__init__(live)
        self._handle = handle

    async def get_for_student_and_course(self, student_id: str, course_id: str) -> Optional[EnrollmentResponse]:
        statement = select(Enrollment).where(
            (Enrollment.student_id == student_id) & (Enrollment.course_id == course_id)
        )
        return await self._handle.run(lambda session: _enrollment_response(session.exec(statement).first()))

    async def list_all(self) -> List[EnrollmentResponse]:
        return await self._handle.run(
            lambda session: [_enrollment_response(e) for e in session.exec(select(Enrollment)).all()]
        )

    async def _insert(self, enrollment: EnrollmentResponse) -> None:
        def work(session: Session) -> None:
            session.add(Enrollment(**enrollment.model_dump()))
            try:
                session.flush()
            except IntegrityError as e:
                raise AlreadyEnrolled(
                    f"Student {enrollment.student_id} already enrolled or pending in {enrollment.course_id}"
                ) from e

        await self._handle.run(work)

    async def _set_status(self, enrollment_id: str, status: EnrollmentStatus) -> EnrollmentResponse:
        def work(session: Session) -> EnrollmentResponse:
            record = session.get(Enrollment, enrollment_id)
            if record is None:
                raise NotFound(f"Enrollment {enrollment_id} not found")
            record.status = status
            session.add(record)
            return _enrollment_response(record)

        return await self._handle.run(work)

    async def _snapshot(self) -> Tuple[List[EnrollmentResponse], List[UserResponse], List[CourseResponse]]:
        def work(session: Session):
            enrollments = [_enrollment_response(e) for e in session.exec(select(Enrollment)).all()]
            users = [UserResponse.from_user(u) for u in session.exec(select(User)).all()]
            return enrollments, users, list_courses(session)

        return await self._handle.run(work)
