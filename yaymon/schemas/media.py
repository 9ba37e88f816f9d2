from enum import Enum
from typing import Optional

from pydantic import BaseModel, model_validator

STORE_SCHEME = "store://"


def store_ref(path: str) -> str:
    return f"{STORE_SCHEME}{path}"


def is_store_ref(ref: Optional[str]) -> bool:
    return bool(ref) and ref.startswith(STORE_SCHEME)


def is_external_url(ref: Optional[str]) -> bool:
    return bool(ref) and ref.startswith(("http://", "https://"))


def ref_path(ref: str) -> str:
    if not is_store_ref(ref):
        raise ValueError(f"Not a store reference: {ref!r}")
    return ref[len(STORE_SCHEME):]


class FileUpload(BaseModel):
    """Bytes handed to the repository together with their declared file name."""
    file_name: str
    data: bytes
    content_type: Optional[str] = None

    @property
    def size_mb(self) -> float:
        return len(self.data) / (1024 * 1024)


class MediaAction(str, Enum):
    keep = "keep"
    remove = "remove"
    file = "file"
    url = "url"


class MediaUpdate(BaseModel):
    """What to do with one media slot (video or attachment) of a lesson."""
    action: MediaAction = MediaAction.keep
    upload: Optional[FileUpload] = None
    url: Optional[str] = None

    @model_validator(mode="after")
    def _check_action_arguments(self) -> "MediaUpdate":
        if self.action == MediaAction.file and self.upload is None:
            raise ValueError("a file media update needs an upload")
        if self.action == MediaAction.url and not self.url:
            raise ValueError("a url media update needs a url")
        if self.action == MediaAction.url and not is_external_url(self.url):
            raise ValueError("a media url must be an http or https address")
        return self

    @classmethod
    def keep(cls) -> "MediaUpdate":
        return cls()

    @classmethod
    def remove(cls) -> "MediaUpdate":
        return cls(action=MediaAction.remove)

    @classmethod
    def replace_with_file(cls, upload: FileUpload) -> "MediaUpdate":
        return cls(action=MediaAction.file, upload=upload)

    @classmethod
    def replace_with_url(cls, url: str) -> "MediaUpdate":
        return cls(action=MediaAction.url, url=url)

    @classmethod
    def from_form(cls, removed: bool = False, upload: Optional[FileUpload] = None,
                  url: Optional[str] = None) -> "MediaUpdate":
        """Removal wins over a new file, a new file wins over a url."""
        if removed:
            return cls.remove()
        if upload is not None:
            return cls.replace_with_file(upload)
        if url:
            return cls.replace_with_url(url)
        return cls.keep()
