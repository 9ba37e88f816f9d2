import asyncio
import logging
import uuid
from pathlib import Path
from posixpath import basename
from typing import Dict

from sqlmodel import Session, col, select

from yaymon.errors import MediaUploadFailed, NotFound, StorageUnavailable
from yaymon.models import Blob
from yaymon.repositories.base import BlobStore
from yaymon.repositories.embedded.handle import EmbeddedHandle
from yaymon.schemas.media import ref_path, store_ref

logger = logging.getLogger(__name__)


class EmbeddedBlobStore(BlobStore):
    """
    Blobs kept in the embedded database.

    `resolve` materialises the bytes into the handle's cache directory and
    returns a `file://` URL. Such URLs live as long as the handle does; they
    are not stable across restarts, so callers resolve again after reopening.
    """

    def __init__(self, handle: EmbeddedHandle):
        self._handle = handle
        self._materialised: Dict[str, Path] = {}

    async def put(self, path: str, data: bytes, content_type=None) -> str:
        def work(session: Session) -> None:
            blob = session.get(Blob, path)
            if blob is None:
                blob = Blob(path=path, data=data)
            blob.data = data
            blob.content_type = content_type
            blob.size = len(data)
            session.add(blob)

        try:
            await self._handle.run(work)
        except StorageUnavailable as e:
            raise MediaUploadFailed(f"Could not store {path}: {e}") from e
        self._forget(path)
        logger.debug(f"Stored blob {path} ({len(data)} bytes)")
        return store_ref(path)

    async def read(self, ref: str) -> bytes:
        path = ref_path(ref)

        def work(session: Session) -> bytes:
            blob = session.get(Blob, path)
            if blob is None:
                raise NotFound(f"Blob {path} not found")
            return blob.data

        return await self._handle.run(work)

    async def delete(self, ref: str) -> None:
        path = ref_path(ref)

        def work(session: Session) -> None:
            blob = session.get(Blob, path)
            if blob is not None:
                session.delete(blob)

        await self._handle.run(work)
        self._forget(path)

    async def delete_prefix(self, prefix: str) -> int:
        def work(session: Session) -> list:
            blobs = session.exec(select(Blob).where(col(Blob.path).startswith(prefix))).all()
            for blob in blobs:
                session.delete(blob)
            return [blob.path for blob in blobs]

        paths = await self._handle.run(work)
        for path in paths:
            self._forget(path)
        return len(paths)

    async def _resolve_path(self, path: str) -> str:
        cached = self._materialised.get(path)
        if cached is not None and cached.exists():
            return cached.as_uri()

        data = await self.read(store_ref(path))
        target = self._handle.url_cache_dir / uuid.uuid4().hex / (basename(path) or "blob")
        try:
            await asyncio.to_thread(_write_file, target, data)
        except OSError as e:
            raise StorageUnavailable(f"Could not materialise {path}: {e}") from e
        self._materialised[path] = target
        return target.as_uri()

    def _forget(self, path: str) -> None:
        cached = self._materialised.pop(path, None)
        if cached is not None:
            cached.unlink(missing_ok=True)


def _write_file(target: Path, data: bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)
