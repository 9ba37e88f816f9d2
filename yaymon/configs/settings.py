import os
from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Backend selection: "embedded" (SQLite) or "hosted" (MongoDB + MinIO)
    BACKEND: str = "embedded"

    # Embedded database
    DATABASE_URL: str = "sqlite:///./yaymon.sqlite"
    DB_ECHO: bool = False

    # Hosted document store
    MONGO_URL: str = "mongodb://localhost:27017"
    MONGO_DB: str = "yaymon"

    # Hosted object storage
    STORAGE_ENDPOINT: str = "localhost:9000"
    STORAGE_ACCESS_KEY: str = "minioadmin"
    STORAGE_SECRET_KEY: str = "minioadmin123"
    STORAGE_BUCKET: str = "yaymon-media"
    STORAGE_SECURE: bool = False
    # Base used for permanent download links; defaults to the endpoint
    STORAGE_PUBLIC_URL: str = ""
    STORAGE_REGION: str = "us-east-1"

    # JWT settings
    JWT_ACCESS_SECRET: str = "change-me-access"
    JWT_REFRESH_SECRET: str = "change-me-refresh"

    # First-run demo data
    SEED_ON_FIRST_OPEN: bool = True
    SEED_FETCH_MEDIA: bool = True
    SEED_FETCH_TIMEOUT: float = 10.0

    # Optional development settings
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    class Config:
        # Look for env file in project root, even when running from subdirectories
        env_file = os.getenv("ENV_FILE") or str(Path(__file__).parent.parent.parent / "local.env")
        # Allow case-insensitive environment variable names
        case_sensitive = False

    @property
    def storage_public_base(self) -> str:
        if self.STORAGE_PUBLIC_URL:
            return self.STORAGE_PUBLIC_URL.rstrip("/")
        scheme = "https" if self.STORAGE_SECURE else "http"
        return f"{scheme}://{self.STORAGE_ENDPOINT}"


settings = Settings()
