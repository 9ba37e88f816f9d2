from typing import Optional

import httpx

from yaymon.configs.settings import Settings
from yaymon.repositories.bundle import Repositories
from yaymon.repositories.embedded.blobs import EmbeddedBlobStore
from yaymon.repositories.embedded.courses import EmbeddedCourseRepository
from yaymon.repositories.embedded.enrollments import EmbeddedEnrollmentLedger
from yaymon.repositories.embedded.handle import EmbeddedHandle
from yaymon.repositories.embedded.identity import EmbeddedIdentityDirectory
from yaymon.repositories.embedded.reviews import EmbeddedReviewStore
from yaymon.repositories.live import LiveQueries
from yaymon.seed import seed_if_empty


async def open_embedded(settings: Settings,
                        transport: Optional[httpx.AsyncBaseTransport] = None) -> Repositories:
    """Opens the embedded database, seeding it on first run."""
    handle = await EmbeddedHandle.open(settings.DATABASE_URL, echo=settings.DB_ECHO)
    # the embedded backend has no change feed; callers re-query after writes
    live = LiveQueries(push_updates=False)
    blobs = EmbeddedBlobStore(handle)
    identity = EmbeddedIdentityDirectory(handle, blobs, live)
    courses = EmbeddedCourseRepository(handle, blobs, live, identity)
    repositories = Repositories(
        identity=identity,
        blobs=blobs,
        courses=courses,
        enrollments=EmbeddedEnrollmentLedger(handle, live),
        reviews=EmbeddedReviewStore(handle, live),
        live=live,
        handle=handle,
        backend="embedded",
    )
    if settings.SEED_ON_FIRST_OPEN:
        try:
            await seed_if_empty(handle, blobs, settings, transport=transport)
        except Exception:
            await handle.close()
            raise
    return repositories


__all__ = ["EmbeddedHandle", "open_embedded"]
