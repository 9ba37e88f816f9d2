from typing import List

from fastapi import APIRouter, Depends

from yaymon.api.deps import get_repositories
from yaymon.auth.auth_handler import get_current_user
from yaymon.repositories import Repositories
from yaymon.schemas import ReviewCreateRequest, ReviewResponse, UserResponse

router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.get("/course/{course_id}", response_model=List[ReviewResponse])
async def list_for_course(course_id: str, repos: Repositories = Depends(get_repositories)):
    return await repos.reviews.list_for_course(course_id)


@router.post("/", response_model=ReviewResponse)
async def add_review(review_req: ReviewCreateRequest,
                     current_user: UserResponse = Depends(get_current_user),
                     repos: Repositories = Depends(get_repositories)):
    return await repos.reviews.add(current_user.id, review_req.course_id, review_req.rating, review_req.comment)
