import asyncio
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Callable, TypeVar

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from yaymon.configs.database import init_db, make_engine
from yaymon.errors import RepositoryError, StorageUnavailable
from yaymon.models import Course, Enrollment, Lesson, Review, User
from yaymon.seed import SeedData

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EmbeddedHandle:
    """
    An opened embedded database.

    Every repository call runs one unit of work in its own short-lived session
    and transaction on a worker thread. Blob access URLs handed out during the
    handle's lifetime are files under `url_cache_dir`, removed on `close()`.
    """

    def __init__(self, engine):
        self.engine = engine
        self.url_cache_dir = Path(tempfile.mkdtemp(prefix="yaymon-media-"))

    @classmethod
    async def open(cls, database_url: str, echo: bool = False) -> "EmbeddedHandle":
        engine = make_engine(database_url, echo=echo)
        try:
            await asyncio.to_thread(init_db, engine)
        except SQLAlchemyError as e:
            engine.dispose()
            raise StorageUnavailable(f"Could not open database {database_url}: {e}") from e
        logger.info(f"Opened embedded database {engine.url}")
        return cls(engine)

    async def run(self, work: Callable[[Session], T]) -> T:
        return await asyncio.to_thread(self._run_sync, work)

    def _run_sync(self, work: Callable[[Session], T]) -> T:
        try:
            with Session(self.engine, expire_on_commit=False) as session:
                result = work(session)
                session.commit()
                return result
        except RepositoryError:
            raise
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"Database error: {e}") from e

    async def is_empty(self) -> bool:
        return await self.run(lambda session: session.exec(select(func.count()).select_from(User)).one() == 0)

    async def commit_seed(self, data: SeedData) -> None:
        def work(session: Session) -> None:
            for user, password_hash in data.users:
                session.add(User(**user.model_dump(), password=password_hash))
            for course in data.courses:
                session.add(Course(**course.model_dump(exclude={"lessons"})))
                for position, lesson in enumerate(course.lessons):
                    session.add(Lesson(course_id=course.id, position=position, **lesson.model_dump()))
            for enrollment in data.enrollments:
                session.add(Enrollment(**enrollment.model_dump()))
            for review in data.reviews:
                session.add(Review(**review.model_dump()))

        await self.run(work)

    async def close(self) -> None:
        self.engine.dispose()
        shutil.rmtree(self.url_cache_dir, ignore_errors=True)
