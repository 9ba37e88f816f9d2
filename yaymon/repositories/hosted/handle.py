import asyncio
import logging
from enum import Enum
from typing import Callable, TypeVar

from minio import Minio, S3Error
from urllib3.exceptions import HTTPError
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from yaymon.configs.storage import ensure_bucket
from yaymon.errors import RepositoryError, StorageUnavailable
from yaymon.schemas import LessonResponse
from yaymon.seed import SeedData

logger = logging.getLogger(__name__)

T = TypeVar("T")

STORAGE_ERRORS = (S3Error, HTTPError, OSError)

USERS = "users"
COURSES = "courses"
ENROLLMENTS = "enrollments"
REVIEWS = "reviews"


def to_document(data: dict) -> dict:
    """Copies `data` with `id` moved to `_id` and enums stored by value."""
    document = {key: (value.value if isinstance(value, Enum) else value) for key, value in data.items()}
    if "id" in document:
        document["_id"] = document.pop("id")
    return document


def from_document(document: dict) -> dict:
    data = dict(document)
    data["id"] = data.pop("_id")
    return data


def lesson_document(lesson: LessonResponse, order: int) -> dict:
    """Lessons are nested in their course document, each with an explicit `order`."""
    return {**lesson.model_dump(), "order": order}


class HostedHandle:
    """
    An opened MongoDB database plus MinIO object storage pair.

    Driver calls block, so each unit of work runs on a worker thread. The
    document store applies writes per document with last-write-wins.
    """

    def __init__(self, client: MongoClient, db_name: str, storage: Minio, bucket: str, public_base: str):
        self.client = client
        self.db: Database = client[db_name]
        self.storage = storage
        self.bucket = bucket
        self.public_base = public_base.rstrip("/")

    async def open(self) -> "HostedHandle":
        await self.run(self._ensure_indexes)
        await asyncio.to_thread(ensure_bucket, self.storage, self.bucket)
        logger.info(f"Opened hosted backend {self.db.name} with bucket {self.bucket}")
        return self

    @staticmethod
    def _ensure_indexes(db: Database) -> None:
        db[USERS].create_index([("email", ASCENDING)], unique=True)
        db[COURSES].create_index([("teacher_id", ASCENDING)])
        db[ENROLLMENTS].create_index([("student_id", ASCENDING), ("course_id", ASCENDING)], unique=True)
        db[REVIEWS].create_index([("course_id", ASCENDING)])

    async def run(self, work: Callable[[Database], T]) -> T:
        return await asyncio.to_thread(self._run_sync, work)

    def _run_sync(self, work: Callable[[Database], T]) -> T:
        try:
            return work(self.db)
        except RepositoryError:
            raise
        except PyMongoError as e:
            raise StorageUnavailable(f"Document store error: {e}") from e

    async def run_storage(self, work: Callable[[Minio], T]) -> T:
        """Runs an object storage call; translating its errors is up to the caller."""
        return await asyncio.to_thread(work, self.storage)

    async def is_empty(self) -> bool:
        return await self.run(lambda db: db[USERS].count_documents({}) == 0)

    async def commit_seed(self, data: SeedData) -> None:
        """
        Writes the seed with idempotent upserts. Users go last: an interrupted
        seed leaves the user collection empty and is simply redone on next open.
        """
        def work(db: Database) -> None:
            for course in data.courses:
                document = to_document(course.model_dump(exclude={"lessons"}))
                document["lessons"] = [lesson_document(lesson, order) for order, lesson in enumerate(course.lessons)]
                db[COURSES].replace_one({"_id": course.id}, document, upsert=True)
            for enrollment in data.enrollments:
                db[ENROLLMENTS].replace_one({"_id": enrollment.id}, to_document(enrollment.model_dump()), upsert=True)
            for review in data.reviews:
                db[REVIEWS].replace_one({"_id": review.id}, to_document(review.model_dump()), upsert=True)
            for user, password_hash in data.users:
                document = to_document(user.model_dump())
                document["password"] = password_hash
                db[USERS].replace_one({"_id": user.id}, document, upsert=True)

        await self.run(work)

    async def close(self) -> None:
        self.client.close()
