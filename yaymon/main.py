import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.middleware.cors import CORSMiddleware

from yaymon.api import auth_api, course_api, enrollment_api, media_api, review_api, user_api
from yaymon.configs import Settings, settings as default_settings
from yaymon.configs.logging_config import setup_logging
from yaymon.errors import RepositoryError
from yaymon.repositories import open_repositories

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    "NotFound": 404,
    "InvalidCredentials": 401,
    "DuplicateEmail": 409,
    "AlreadyEnrolled": 409,
    "InvalidOrder": 422,
    "InvalidRating": 422,
    "MediaUploadFailed": 502,
    "StorageUnavailable": 503,
}


async def repository_error_handler(request: Request, exc: RepositoryError) -> JSONResponse:
    status_code = STATUS_BY_KIND.get(exc.kind, 500)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.kind}: {exc.message}")
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return JSONResponse(status_code=status_code, content={"kind": exc.kind, "detail": exc.message}, headers=headers)


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    detail = "; ".join(error["msg"] for error in exc.errors())
    return JSONResponse(status_code=422, content={"kind": "ValidationError", "detail": detail})


def create_app(settings: Optional[Settings] = None, **backend_options) -> FastAPI:
    """
    Builds the API around one repositories bundle, opened for the lifetime of
    the app. `backend_options` go to the backend opener (test clients,
    seed transport).
    """
    settings = settings or default_settings
    setup_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.repositories = await open_repositories(settings, **backend_options)
        logger.info(f"Serving the {app.state.repositories.backend} backend")
        yield
        await app.state.repositories.close()

    app = FastAPI(title="Yaymon Learning", debug=settings.DEBUG, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RepositoryError, repository_error_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)

    app.include_router(auth_api.router)
    app.include_router(user_api.router)
    app.include_router(course_api.router)
    app.include_router(enrollment_api.router)
    app.include_router(review_api.router)
    app.include_router(media_api.router)
    return app
