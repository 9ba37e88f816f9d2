from typing import Optional

import httpx
from minio import Minio
from pymongo import MongoClient

from yaymon.configs.database import make_mongo_client
from yaymon.configs.settings import Settings
from yaymon.configs.storage import make_storage_client
from yaymon.repositories.bundle import Repositories
from yaymon.repositories.hosted.blobs import HostedBlobStore
from yaymon.repositories.hosted.courses import HostedCourseRepository
from yaymon.repositories.hosted.enrollments import HostedEnrollmentLedger
from yaymon.repositories.hosted.handle import HostedHandle
from yaymon.repositories.hosted.identity import HostedIdentityDirectory
from yaymon.repositories.hosted.reviews import HostedReviewStore
from yaymon.repositories.live import LiveQueries
from yaymon.seed import seed_if_empty


async def open_hosted(settings: Settings,
                      mongo_client: Optional[MongoClient] = None,
                      storage_client: Optional[Minio] = None,
                      transport: Optional[httpx.AsyncBaseTransport] = None) -> Repositories:
    """Connects to the document store and object storage, seeding on first run."""
    handle = HostedHandle(
        mongo_client or make_mongo_client(settings.MONGO_URL),
        settings.MONGO_DB,
        storage_client or make_storage_client(settings),
        settings.STORAGE_BUCKET,
        settings.storage_public_base,
    )
    try:
        await handle.open()
        live = LiveQueries(push_updates=True)
        blobs = HostedBlobStore(handle)
        identity = HostedIdentityDirectory(handle, blobs, live)
        repositories = Repositories(
            identity=identity,
            blobs=blobs,
            courses=HostedCourseRepository(handle, blobs, live, identity),
            enrollments=HostedEnrollmentLedger(handle, live),
            reviews=HostedReviewStore(handle, live),
            live=live,
            handle=handle,
            backend="hosted",
        )
        if settings.SEED_ON_FIRST_OPEN:
            await seed_if_empty(handle, blobs, settings, transport=transport)
    except Exception:
        await handle.close()
        raise
    return repositories


__all__ = ["HostedHandle", "open_hosted"]
