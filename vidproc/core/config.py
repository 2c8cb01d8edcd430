from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Secrets(BaseSettings):
    """Secrets configuration, loaded from the environment or a secrets management service."""

    model_config = SettingsConfigDict(
        env_prefix="VIDPROC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_token: str = Field(default="change-me", description="Opaque bearer token accepted by the API.")


class Settings(BaseSettings):
    """Centralised runtime configuration for the vidproc service."""

    model_config = SettingsConfigDict(
        env_prefix="VIDPROC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "vidproc API"
    environment: str = Field(default="development", description="Deployment environment label.")
    version: str = Field(default="0.1.0", description="API version for metadata and OpenAPI.")
    log_level: str = Field(default="info")

    database_url: str = Field(
        default="sqlite+aiosqlite:///./vidproc.db",
        description="SQLAlchemy compatible DSN.",
    )
    db_pool_timeout_s: float = Field(
        default=30.0,
        description="How long a writer waits for the single store connection.",
    )

    video_storage_path: Path = Field(
        default_factory=lambda: Path("videos"),
        description="Root directory holding every asset file.",
    )
    max_upload_size_bytes: int = Field(default=25 * 1024 * 1024, ge=1, description="Hard limit for uploads.")
    min_duration_s: float = Field(default=5, ge=0, description="Shortest accepted upload, inclusive.")
    max_duration_s: float = Field(default=25, ge=0, description="Longest accepted upload, inclusive.")

    allowed_extensions: tuple[str, ...] = Field(
        default=(".mp4", ".mov", ".avi", ".mkv", ".webm"),
        description="Container extensions accepted for upload.",
    )
    allowed_content_types: tuple[str, ...] = Field(
        default=(
            "video/mp4",
            "video/quicktime",
            "video/x-msvideo",
            "video/x-matroska",
            "video/webm",
            "application/octet-stream",
        ),
        description="Content types accepted for upload when the client sends one.",
    )

    share_min_ttl_hours: int = Field(default=1, ge=1)
    share_max_ttl_hours: int = Field(default=168, ge=1)

    ffprobe_path: str = Field(default="ffprobe", description="Inspection tool binary.")
    ffmpeg_path: str = Field(default="ffmpeg", description="Transcoder binary.")
    tool_timeout_s: float | None = Field(
        default=300.0,
        description="Upper bound for a single external tool run; None disables the limit.",
    )

    secrets: Secrets = Field(default_factory=Secrets, description="Holds sensitive configuration.")

    @property
    def environment_lower(self) -> str:
        return self.environment.lower()

    @property
    def normalized_extensions(self) -> frozenset[str]:
        return frozenset(ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in self.allowed_extensions)


@lru_cache()
def get_settings() -> Settings:
    load_dotenv(".env", override=False)

    _ENV_ALIAS_MAP = {
        "VIDPROC_ENV": "VIDPROC_ENVIRONMENT",
        "VIDPROC_DB_URL": "VIDPROC_DATABASE_URL",
        "VIDPROC_STORAGE_PATH": "VIDPROC_VIDEO_STORAGE_PATH",
    }

    for source, target in _ENV_ALIAS_MAP.items():
        value = os.getenv(source)
        if value:
            os.environ[target] = value

    settings = Settings()

    secrets = Secrets()

    if settings.environment_lower == "production" and secrets.api_token == "change-me":
        raise ValueError("Production environment must have a non-default API token.")
    if settings.min_duration_s > settings.max_duration_s:
        raise ValueError("min_duration_s must not exceed max_duration_s.")
    if settings.share_min_ttl_hours > settings.share_max_ttl_hours:
        raise ValueError("share_min_ttl_hours must not exceed share_max_ttl_hours.")

    settings.secrets = secrets
    return settings


__all__ = ["Secrets", "Settings", "get_settings"]
