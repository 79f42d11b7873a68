"""Application configuration and settings management.

This module defines the application settings loaded from environment
variables and provides a helper for accessing the cached settings.
"""

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables.

    Attributes:
        DATABASE_URL: Database connection string.
        UPLOAD_DIR: Directory used by the local blob store for uploaded files.
        BLOB_BACKEND: Blob store backend, ``local`` or ``cloudinary``.
        CLOUDINARY_URL: Cloudinary connection URL for the cloudinary backend.
        CLOUDINARY_FOLDER: Cloudinary folder that receives contact files.
        REDIS_URL: Redis connection URL for rate limiting.
        RATE_LIMIT_TIMES: Requests allowed per client within the window.
        RATE_LIMIT_SECONDS: Length of the rate limit window in seconds.
        ALLOWED_ORIGINS: Allowed origins for CORS.
        LOG_LEVEL: Root logger level name.
        LOG_FILE: Optional path of a log file.
    """

    DATABASE_URL: str = "sqlite:///./app.db"
    UPLOAD_DIR: str = "uploads"
    BLOB_BACKEND: str = "local"
    CLOUDINARY_URL: str | None = None
    CLOUDINARY_FOLDER: str = "contacts_files"
    REDIS_URL: str | None = None
    RATE_LIMIT_TIMES: int = 30
    RATE_LIMIT_SECONDS: int = 60
    ALLOWED_ORIGINS: List[str] = ["*"]
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str | None = None

    model_config = SettingsConfigDict(env_file=".env", extra="allow")


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings.

    The settings object is cached to prevent reloading environment
    variables multiple times during application lifetime.
    """

    return Settings()
