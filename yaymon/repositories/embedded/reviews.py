from typing import List

from sqlmodel import Session, select

from yaymon.models import Review
from yaymon.repositories.base import ReviewStore
from yaymon.repositories.embedded.handle import EmbeddedHandle
from yaymon.repositories.live import LiveQueries
from yaymon.schemas import ReviewResponse


class EmbeddedReviewStore(ReviewStore):

    def __init__(self, handle: EmbeddedHandle, live: LiveQueries):
        super().__init__(live)
        self._handle = handle

    async def list_for_course(self, course_id: str) -> List[ReviewResponse]:
        statement = select(Review).where(Review.course_id == course_id)
        return await self._handle.run(
            lambda session: [ReviewResponse.model_validate(r.model_dump()) for r in session.exec(statement).all()]
        )

    async def _insert(self, review: ReviewResponse) -> None:
        def work(session: Session) -> None:
            session.add(Review(**review.model_dump()))

        await self._handle.run(work)
