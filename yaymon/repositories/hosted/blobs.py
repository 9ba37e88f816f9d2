import io
import logging
from urllib.parse import quote

from minio import Minio, S3Error

from yaymon.errors import MediaUploadFailed, NotFound, StorageUnavailable
from yaymon.repositories.base import BlobStore
from yaymon.repositories.hosted.handle import STORAGE_ERRORS, HostedHandle
from yaymon.schemas.media import ref_path, store_ref

logger = logging.getLogger(__name__)

MISSING_OBJECT_CODES = ("NoSuchKey", "NoSuchObject")


def _read_error(e: Exception, path: str) -> Exception:
    if isinstance(e, S3Error) and e.code in MISSING_OBJECT_CODES:
        return NotFound(f"File not found in MinIO: {path}")
    return StorageUnavailable(f"MinIO error for {path}: {str(e)}")


class HostedBlobStore(BlobStore):
    """Blobs in a MinIO bucket; resolved URLs are permanent public object URLs."""

    def __init__(self, handle: HostedHandle):
        self._handle = handle

    @property
    def _bucket(self) -> str:
        return self._handle.bucket

    async def put(self, path: str, data: bytes, content_type=None) -> str:
        def work(storage: Minio) -> None:
            storage.put_object(
                bucket_name=self._bucket,
                object_name=path,
                data=io.BytesIO(data),
                length=len(data),
                content_type=content_type or "application/octet-stream",
            )

        try:
            await self._handle.run_storage(work)
        except STORAGE_ERRORS as e:
            raise MediaUploadFailed(f"MinIO upload error for {path}: {str(e)}") from e
        logger.debug(f"Uploaded {path} ({len(data)} bytes) to {self._bucket}")
        return store_ref(path)

    async def read(self, ref: str) -> bytes:
        path = ref_path(ref)

        def work(storage: Minio) -> bytes:
            response = storage.get_object(bucket_name=self._bucket, object_name=path)
            try:
                return response.read()
            finally:
                response.close()
                response.release_conn()

        try:
            return await self._handle.run_storage(work)
        except STORAGE_ERRORS as e:
            raise _read_error(e, path) from e

    async def delete(self, ref: str) -> None:
        path = ref_path(ref)
        try:
            await self._handle.run_storage(
                lambda storage: storage.remove_object(bucket_name=self._bucket, object_name=path))
        except STORAGE_ERRORS as e:
            raise StorageUnavailable(f"MinIO delete error for {path}: {str(e)}") from e

    async def delete_prefix(self, prefix: str) -> int:
        def work(storage: Minio) -> int:
            names = [obj.object_name for obj in
                     storage.list_objects(bucket_name=self._bucket, prefix=prefix, recursive=True)]
            for name in names:
                storage.remove_object(bucket_name=self._bucket, object_name=name)
            return len(names)

        try:
            return await self._handle.run_storage(work)
        except STORAGE_ERRORS as e:
            raise StorageUnavailable(f"MinIO delete error under {prefix}: {str(e)}") from e

    async def _resolve_path(self, path: str) -> str:
        try:
            await self._handle.run_storage(
                lambda storage: storage.stat_object(bucket_name=self._bucket, object_name=path))
        except STORAGE_ERRORS as e:
            raise _read_error(e, path) from e
        return f"{self._handle.public_base}/{self._bucket}/{quote(path)}"
