"""
Configuration and settings for the society backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    cors_allow_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Document store: SQLAlchemy URL (Postgres in production, SQLite locally)
    database_url: Optional[str] = Field(default=None, validation_alias="DATABASE_URL")

    # Firebase (Firestore + Auth)
    use_firestore: bool = Field(
        default=False, validation_alias="SOCIALIZER_USE_FIRESTORE"
    )
    firebase_credentials_path: Optional[str] = Field(
        default=None, validation_alias="GOOGLE_APPLICATION_CREDENTIALS"
    )
    firebase_project_id: Optional[str] = Field(
        default=None, validation_alias="FIREBASE_PROJECT_ID"
    )

    # S3-compatible storage for profile pictures
    storage_endpoint: Optional[str] = Field(
        default=None, validation_alias="STORAGE_ENDPOINT"
    )
    storage_region: Optional[str] = Field(
        default=None, validation_alias="STORAGE_REGION"
    )
    storage_bucket: Optional[str] = Field(
        default=None, validation_alias="STORAGE_BUCKET"
    )
    aws_access_key_id: Optional[str] = Field(
        default=None, validation_alias="AWS_ACCESS_KEY_ID"
    )
    aws_secret_access_key: Optional[str] = Field(
        default=None, validation_alias="AWS_SECRET_ACCESS_KEY"
    )
    profile_picture_url_ttl: int = Field(
        default=3600, validation_alias="PROFILE_PICTURE_URL_TTL"
    )

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, validation_alias="SOCIALIZER_USE_IN_MEMORY_BACKENDS"
    )

    # Broadcast fan-out queue (Redis)
    redis_url: Optional[str] = Field(default=None, validation_alias="REDIS_URL")
    redis_queue_key: str = Field(
        default="socializer:fanout", validation_alias="REDIS_QUEUE_KEY"
    )
    fanout_inline: bool = Field(
        default=False, validation_alias="SOCIALIZER_FANOUT_INLINE"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
