"""
Demonstration dataset loaded on first open.

The same literal dataset is committed by every backend so that both behave
identically right after the first run.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Tuple

import httpx

from yaymon.auth.auth_handler import get_password_hash
from yaymon.configs.settings import Settings
from yaymon.errors import MediaUploadFailed
from yaymon.models import CourseStatus, EnrollmentStatus, Role
from yaymon.schemas import CourseResponse, EnrollmentResponse, LessonResponse, ReviewResponse, UserResponse
from yaymon.utils.utils import make_course_image_path, make_user_photo_path

logger = logging.getLogger(__name__)

SEED_USERS = [
    {"id": "admin1", "email": "admin@test.com", "password": "admin", "name": "Erick",
     "role": Role.admin, "photo_url": "https://picsum.photos/seed/admin1/200"},
    {"id": "teacher1", "email": "teacher@test.com", "password": "password", "name": "Alice Teacher",
     "role": Role.teacher, "photo_url": "https://picsum.photos/seed/teacher1/200"},
    {"id": "student1", "email": "student@test.com", "password": "password", "name": "Bob Student",
     "role": Role.student, "photo_url": "https://picsum.photos/seed/student1/200"},
    {"id": "student2", "email": "student2@test.com", "password": "password", "name": "Charlie Student",
     "role": Role.student, "photo_url": "https://picsum.photos/seed/student2/200"},
]

SEED_COURSES = [
    {
        "id": "course1",
        "title": "Introduction to React",
        "description": "Learn the fundamentals of React, including components, state, props, and hooks.",
        "teacher_id": "teacher1",
        "image_url": "https://picsum.photos/seed/course1/600/400",
        "lessons": [
            {"id": "l1-1", "title": "Welcome to React!", "duration": "5 minutes",
             "content": "This is the first lesson, available for everyone to preview. We will cover the very basics."},
            {"id": "l1-2", "title": "Understanding JSX", "duration": "15 minutes",
             "content": "JSX is a syntax extension for JavaScript. It allows you to write HTML-like code in your "
                        "JavaScript files."},
            {"id": "l1-3", "title": "Components and Props", "duration": "20 minutes",
             "content": "Components are the building blocks of React applications. Props are how you pass data "
                        "between them."},
        ],
    },
    {
        "id": "course2",
        "title": "Advanced Tailwind CSS",
        "description": "Master Tailwind CSS and build beautiful, responsive UIs with utility-first classes.",
        "teacher_id": "teacher1",
        "image_url": "https://picsum.photos/seed/course2/600/400",
        "lessons": [
            {"id": "l2-1", "title": "Getting Started with Tailwind", "duration": "10 minutes",
             "content": "This is a free preview. Learn how to set up Tailwind CSS in your project."},
            {"id": "l2-2", "title": "Responsive Design", "duration": "25 minutes",
             "content": "Learn how to use Tailwind's responsive design features to build mobile-first layouts."},
        ],
    },
]

SEED_ENROLLMENTS = [
    {"id": "enroll1", "student_id": "student1", "course_id": "course1", "status": EnrollmentStatus.approved},
    {"id": "enroll2", "student_id": "student2", "course_id": "course1", "status": EnrollmentStatus.pending},
]

SEED_REVIEWS = [
    {"id": "review1", "student_id": "student1", "course_id": "course1", "rating": 5,
     "comment": "Excellent course! The instructor was very clear."},
]


@dataclass
class SeedData:
    users: List[Tuple[UserResponse, str]] = field(default_factory=list)
    courses: List[CourseResponse] = field(default_factory=list)
    enrollments: List[EnrollmentResponse] = field(default_factory=list)
    reviews: List[ReviewResponse] = field(default_factory=list)


class Seedable(Protocol):
    async def is_empty(self) -> bool:
        ...

    async def commit_seed(self, data: SeedData) -> None:
        ...


async def _fetch(client: httpx.AsyncClient, url: str) -> Optional[Tuple[bytes, Optional[str]]]:
    try:
        response = await client.get(url)
        response.raise_for_status()
        return response.content, response.headers.get("content-type")
    except httpx.HTTPError as e:
        logger.error(f"Failed to fetch seed media {url}: {e}")
        return None


async def fetch_seed_media(urls: List[str], timeout: float = 10.0,
                           transport: Optional[httpx.AsyncBaseTransport] = None
                           ) -> Dict[str, Optional[Tuple[bytes, Optional[str]]]]:
    """Downloads every url concurrently; a failed download maps to None."""
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True, transport=transport) as client:
        results = await asyncio.gather(*(_fetch(client, url) for url in urls))
    return dict(zip(urls, results))


async def _store(blobs, path: str, fetched: Optional[Tuple[bytes, Optional[str]]]) -> Optional[str]:
    if fetched is None:
        return None
    data, content_type = fetched
    try:
        return await blobs.put(path, data, content_type)
    except MediaUploadFailed as e:
        logger.error(f"Failed to store seed media at {path}: {e}")
        return None


async def prepare_seed(blobs, fetch_media: bool = True, timeout: float = 10.0,
                       transport: Optional[httpx.AsyncBaseTransport] = None) -> SeedData:
    """
    Builds the seed records, downloading their media into the blob store first.

    A record whose media could not be fetched or stored is seeded without that
    media reference instead of failing the whole seed.
    """
    media: Dict[str, Optional[Tuple[bytes, Optional[str]]]] = {}
    if fetch_media:
        urls = [u["photo_url"] for u in SEED_USERS] + [c["image_url"] for c in SEED_COURSES]
        media = await fetch_seed_media(urls, timeout=timeout, transport=transport)

    data = SeedData()
    for u in SEED_USERS:
        photo_ref = await _store(blobs, make_user_photo_path(u["id"], "photo.jpg"), media.get(u["photo_url"]))
        user = UserResponse(id=u["id"], email=u["email"], name=u["name"], role=u["role"],
                            profile_photo_ref=photo_ref)
        data.users.append((user, get_password_hash(u["password"])))

    for c in SEED_COURSES:
        image_ref = await _store(blobs, make_course_image_path(c["id"], "cover.jpg"), media.get(c["image_url"]))
        data.courses.append(CourseResponse(
            id=c["id"],
            title=c["title"],
            description=c["description"],
            teacher_id=c["teacher_id"],
            status=CourseStatus.published,
            image_ref=image_ref,
            lessons=[LessonResponse(**lesson) for lesson in c["lessons"]],
        ))

    data.enrollments = [EnrollmentResponse(**e) for e in SEED_ENROLLMENTS]
    data.reviews = [ReviewResponse(**r) for r in SEED_REVIEWS]
    return data


async def seed_if_empty(target: Seedable, blobs, settings: Settings,
                        transport: Optional[httpx.AsyncBaseTransport] = None) -> bool:
    """Seeds the backend when its user collection is empty. Returns True if it seeded."""
    if not await target.is_empty():
        return False
    logger.info("Seeding initial data...")
    data = await prepare_seed(blobs, fetch_media=settings.SEED_FETCH_MEDIA,
                              timeout=settings.SEED_FETCH_TIMEOUT, transport=transport)
    await target.commit_seed(data)
    logger.info(f"Seeding complete: {len(data.users)} users, {len(data.courses)} courses, "
                f"{len(data.enrollments)} enrollments, {len(data.reviews)} reviews")
    return True
