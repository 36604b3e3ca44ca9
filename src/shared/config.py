"""Environment-aware configuration with validation.

Settings are read from the process environment once, validated, and then
treated as read-only for the lifetime of the worker. Components never read
environment variables themselves; they receive the Settings instance from the
entry point.
"""

import tempfile
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Worker settings loaded from environment variables.

    Example:
        >>> settings = get_settings()
        >>> print(settings.destination_bucket)
        'videos-processed'
    """

    model_config = SettingsConfigDict(
        case_sensitive=False,
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    # Environment
    environment: Literal["dev", "staging", "prod"] = Field(
        default="dev",
        description="Deployment environment",
    )
    aws_region: str = Field(
        default="us-east-1",
        alias="AWS_REGION",
        description="Region passed to the object storage client",
    )

    # Object storage
    s3_endpoint_url: str | None = Field(
        default=None,
        alias="S3_ENDPOINT_URL",
        description="Custom S3-compatible endpoint (e.g. https://blr1.digitaloceanspaces.com)",
    )
    s3_access_key: str | None = Field(
        default=None,
        alias="S3_ACCESS_KEY",
        description="Access key; falls back to the default credential chain when unset",
    )
    s3_secret_key: str | None = Field(
        default=None,
        alias="S3_SECRET_KEY",
        description="Secret key paired with S3_ACCESS_KEY",
    )
    source_bucket: str = Field(
        default="",
        alias="SOURCE_BUCKET",
        description="Bucket holding raw uploads when the trigger does not name one",
    )
    destination_bucket: str = Field(
        default="",
        alias="DESTINATION_BUCKET",
        description="Bucket receiving the published HLS tree",
    )
    download_chunk_size_mb: int = Field(
        default=8,
        ge=1,
        le=256,
        alias="DOWNLOAD_CHUNK_SIZE_MB",
        description="Chunk size used when streaming the source object to disk",
    )

    # Control plane callback
    backend_api_url: str = Field(
        default="",
        alias="BACKEND_API_URL",
        description="Control-plane endpoint receiving the completion report",
    )
    backend_api_key: str = Field(
        default="",
        alias="BACKEND_API_KEY",
        description="Bearer secret sent with the completion report",
    )
    callback_timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        le=60.0,
        alias="CALLBACK_TIMEOUT_SECONDS",
        description="Timeout for the completion callback request",
    )

    # Encoder
    ffmpeg_path: str = Field(
        default="ffmpeg",
        alias="FFMPEG_PATH",
        description="Path to the ffmpeg binary (e.g. /opt/bin/ffmpeg from a layer)",
    )
    encode_timeout_seconds: float | None = Field(
        default=None,
        gt=0.0,
        alias="ENCODE_TIMEOUT_SECONDS",
        description="Optional hard limit for the encoder process",
    )
    segment_duration_seconds: int = Field(
        default=4,
        ge=1,
        le=30,
        alias="SEGMENT_DURATION_SECONDS",
        description="Target HLS segment duration",
    )

    # Workspace
    workspace_root: str = Field(
        default_factory=tempfile.gettempdir,
        alias="WORKSPACE_ROOT",
        description="Directory under which per-job workspaces are created",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging level",
    )

    @field_validator("backend_api_url", "s3_endpoint_url", mode="before")
    @classmethod
    def validate_http_url(cls, v: str | None) -> str | None:
        """Ensure configured URLs use an HTTP scheme."""
        if v and not v.startswith(("https://", "http://")):
            raise ValueError("URL must start with http:// or https://")
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "prod"

    @property
    def download_chunk_size_bytes(self) -> int:
        """Get download chunk size in bytes."""
        return self.download_chunk_size_mb * 1024 * 1024


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached worker settings.

    Settings are loaded once per process. A warm Lambda container reuses the
    same instance across invocations.

    Raises:
        ValidationError: If environment variables are invalid
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing when environment variables change.
    """
    get_settings.cache_clear()
