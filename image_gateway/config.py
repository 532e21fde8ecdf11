"""Application settings, read from the environment and an optional ``.env`` file."""

from functools import cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


class Settings(BaseSettings):
    """Gateway configuration settings."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Server
    port: int = Field(default=3000, description="Port uvicorn listens on")
    public_url: Optional[str] = Field(
        default=None,
        description="Base URL used to build image links (default: http://localhost:<port>)",
    )
    log_level: str = Field(default="INFO", description="Root logging level")
    cors_origins: str = Field(
        default="*", description="Comma-separated list of allowed CORS origins"
    )

    # Auth
    api_keys: str = Field(
        default="",
        description="Comma-separated list of valid X-API-Key values",
    )

    # Object store (Cloudflare R2 / any S3-compatible endpoint)
    r2_endpoint: Optional[str] = Field(default=None, description="S3 endpoint URL")
    r2_access_key_id: Optional[str] = Field(default=None, description="Access key id")
    r2_secret_access_key: Optional[str] = Field(
        default=None, description="Secret access key"
    )
    r2_bucket_name: Optional[str] = Field(default=None, description="Bucket name")

    # Conversion cache
    cache_ttl_seconds: float = Field(
        default=2700,
        gt=0,
        description="Lifetime of a cached conversion in seconds (default: 45 minutes)",
    )
    cache_cleanup_interval: float = Field(
        default=300,
        gt=0,
        description="Seconds between sweeps of expired conversions",
    )

    # Moderator allowlist
    moderators_file: Path = Field(
        default=Path("moderators.txt"),
        description="Newline-delimited moderator usernames",
    )
    moderators_ttl_seconds: float = Field(
        default=86400,
        gt=0,
        description="Seconds before the moderator list is re-read (default: 24 hours)",
    )
    moderators_retry_seconds: float = Field(
        default=60,
        gt=0,
        description="Seconds to wait before re-reading an unreadable moderator list",
    )

    # Uploads
    webp_quality: int = Field(
        default=85, ge=1, le=100, description="WebP quality for uploads"
    )
    max_upload_bytes: int = Field(
        default=10 * 1024 * 1024,
        gt=0,
        description="Largest accepted upload body in bytes (default: 10 MiB)",
    )

    @property
    def valid_api_keys(self) -> frozenset[str]:
        return frozenset(k.strip() for k in self.api_keys.split(",") if k.strip())

    @property
    def allowed_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def base_url(self) -> str:
        return (self.public_url or f"http://localhost:{self.port}").rstrip("/")

    @property
    def has_object_store(self) -> bool:
        return all(
            (
                self.r2_endpoint,
                self.r2_access_key_id,
                self.r2_secret_access_key,
                self.r2_bucket_name,
            )
        )


@cache
def get_settings() -> Settings:
    return Settings()
