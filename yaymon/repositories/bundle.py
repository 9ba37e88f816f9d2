from dataclasses import dataclass
from typing import Callable, Protocol

from yaymon.repositories.base import (
    BlobStore,
    CourseRepository,
    EnrollmentLedger,
    IdentityDirectory,
    ReviewStore,
)
from yaymon.repositories.live import Listener, LiveQueries, Query


class BackendHandle(Protocol):
    async def close(self) -> None:
        ...


@dataclass
class Repositories:
    """Every repository of one opened backend, sharing one handle."""
    identity: IdentityDirectory
    blobs: BlobStore
    courses: CourseRepository
    enrollments: EnrollmentLedger
    reviews: ReviewStore
    live: LiveQueries
    handle: BackendHandle
    backend: str

    async def watch(self, query: Query, listener: Listener) -> Callable[[], None]:
        """Subscribes `listener` to the full result of `query`; returns the unsubscribe function."""
        return await self.live.watch(query, listener)

    async def close(self) -> None:
        self.identity.sign_out()
        await self.handle.close()
