from typing import List

from yaymon.repositories.base import ReviewStore
from yaymon.repositories.hosted.handle import REVIEWS, HostedHandle, from_document, to_document
from yaymon.repositories.live import LiveQueries
from yaymon.schemas import ReviewResponse


class HostedReviewStore(ReviewStore):

    def __init__(self, handle: HostedHandle, live: LiveQueries):
        super().__init__(live)
        self._handle = handle

    async def list_for_course(self, course_id: str) -> List[ReviewResponse]:
        return await self._handle.run(
            lambda db: [ReviewResponse.model_validate(from_document(d))
                        for d in db[REVIEWS].find({"course_id": course_id})]
        )

    async def _insert(self, review: ReviewResponse) -> None:
        document = to_document(review.model_dump())
        await self._handle.run(lambda db: db[REVIEWS].insert_one(document))
