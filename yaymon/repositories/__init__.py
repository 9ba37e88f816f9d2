from typing import Optional

from yaymon.configs.settings import Settings, settings as default_settings
from yaymon.repositories.base import (
    BlobStore,
    CourseRepository,
    EnrollmentLedger,
    IdentityDirectory,
    ReviewStore,
)
from yaymon.repositories.bundle import Repositories
from yaymon.repositories.embedded import open_embedded
from yaymon.repositories.hosted import open_hosted

BACKENDS = ("embedded", "hosted")


async def open_repositories(settings: Optional[Settings] = None, **kwargs) -> Repositories:
    """Opens the backend named by `settings.BACKEND`; extra kwargs go to its opener."""
    settings = settings or default_settings
    backend = settings.BACKEND.lower()
    if backend == "embedded":
        return await open_embedded(settings, **kwargs)
    if backend == "hosted":
        return await open_hosted(settings, **kwargs)
    raise ValueError(f"Unknown backend {settings.BACKEND!r}; expected one of {BACKENDS}")


__all__ = [
    "BlobStore",
    "CourseRepository",
    "EnrollmentLedger",
    "IdentityDirectory",
    "Repositories",
    "ReviewStore",
    "open_embedded",
    "open_hosted",
    "open_repositories",
]
