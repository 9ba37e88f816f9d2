class RepositoryError(Exception):
    """Base class for every failure surfaced by the content repository."""
    kind = "RepositoryError"

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind)
        self.message = message or self.kind


class NotFound(RepositoryError):
    kind = "NotFound"


class InvalidCredentials(RepositoryError):
    kind = "InvalidCredentials"


class DuplicateEmail(RepositoryError):
    kind = "DuplicateEmail"


class AlreadyEnrolled(RepositoryError):
    kind = "AlreadyEnrolled"


class InvalidOrder(RepositoryError):
    kind = "InvalidOrder"


class InvalidRating(RepositoryError):
    kind = "InvalidRating"


class StorageUnavailable(RepositoryError):
    kind = "StorageUnavailable"


class MediaUploadFailed(RepositoryError):
    kind = "MediaUploadFailed"
