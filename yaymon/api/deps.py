from typing import Optional

from fastapi import Request, UploadFile

from yaymon.repositories import Repositories
from yaymon.schemas import FileUpload


def get_repositories(request: Request) -> Repositories:
    return request.app.state.repositories


async def read_upload(upload: Optional[UploadFile]) -> Optional[FileUpload]:
    """Reads a multipart file into memory; an absent or unnamed part means no file."""
    if upload is None or not upload.filename:
        return None
    data = await upload.read()
    return FileUpload(file_name=upload.filename, data=data, content_type=upload.content_type)
