import httpx

from yaymon.configs import Settings
from yaymon.schemas import FileUpload

IMAGE_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
PUBLIC_BASE = "http://media.test"


def media_transport(failing=()):
    """Serves a small image for every seed media url except those in `failing`."""
    failing = set(failing)

    def handler(request: httpx.Request) -> httpx.Response:
        if str(request.url) in failing:
            return httpx.Response(404)
        return httpx.Response(200, content=IMAGE_BYTES, headers={"content-type": "image/jpeg"})

    return httpx.MockTransport(handler)


def embedded_settings(**overrides) -> Settings:
    values = dict(BACKEND="embedded", DATABASE_URL="sqlite://", SEED_ON_FIRST_OPEN=True, SEED_FETCH_MEDIA=True,
                  LOG_LEVEL="WARNING")
    values.update(overrides)
    return Settings(**values)


def hosted_settings(**overrides) -> Settings:
    values = dict(BACKEND="hosted", MONGO_DB="yaymon_test", STORAGE_BUCKET="yaymon-test-media",
                  STORAGE_PUBLIC_URL=PUBLIC_BASE, SEED_ON_FIRST_OPEN=True, SEED_FETCH_MEDIA=True,
                  LOG_LEVEL="WARNING")
    values.update(overrides)
    return Settings(**values)


def upload(name="file.bin", data=b"payload", content_type="application/octet-stream") -> FileUpload:
    return FileUpload(file_name=name, data=data, content_type=content_type)
