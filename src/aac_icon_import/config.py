"""Configuration management for the AAC icon importer.

This module provides centralized configuration using pydantic-settings.
All configuration options can be set via environment variables with the
AAC_ prefix, or via a .env file in the project root.

Environment Variables:
    AAC_MAX_FILE_SIZE_MB: Maximum workbook upload size in MB (default: 10)
    AAC_FETCH_TIMEOUT_SECONDS: Timeout for a single image download (default: 15)
    AAC_FETCH_MAX_CONCURRENCY: Concurrent image downloads per batch (default: 4)
    AAC_FETCH_MAX_RETRIES: Retries for transient network errors (default: 2)
    AAC_FETCH_RETRY_BASE_DELAY: Initial retry backoff in seconds (default: 0.5)
    AAC_MAX_IMAGE_SIZE_MB: Largest accepted image download in MB (default: 10)
    AAC_ICON_MAX_DIMENSION: Longest side of stored icon images (default: 512)
    AAC_ICON_JPEG_QUALITY: JPEG quality of stored icon images (default: 75)
    AAC_FOLDER_STORE_PATH: JSON file holding folders (default: data/folders.json)
    AAC_DEFAULT_FOLDER_NAMES: Folders seeded into an empty store (default: ["General"])
    AAC_JOB_TTL_HOURS: Import job status retention in hours (default: 24)
    AAC_LOG_LEVEL: Logging level (default: INFO)
    AAC_DEBUG: Enable debug mode (default: false)
    AAC_CORS_ORIGINS: Comma-separated CORS origins (default: *)
    AAC_SERVER_HOST: Server bind host (default: 0.0.0.0)
    AAC_SERVER_PORT: Server bind port (default: 8000)
"""

import logging
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Example .env file:
        AAC_FETCH_MAX_CONCURRENCY=8
        AAC_FOLDER_STORE_PATH=/var/lib/aac/folders.json
        AAC_LOG_LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_prefix="AAC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # =========================================================================
    # Upload Settings
    # =========================================================================

    max_file_size_mb: int = 10
    """Maximum workbook upload size in megabytes."""

    # =========================================================================
    # Image Fetch Settings
    # =========================================================================

    fetch_timeout_seconds: float = 15.0
    """Timeout applied to each image download."""

    fetch_max_concurrency: int = 4
    """Upper bound on image downloads in flight for one batch."""

    fetch_max_retries: int = 2
    """Retries for timeouts and connection errors (HTTP errors are not retried)."""

    fetch_retry_base_delay: float = 0.5
    """Initial backoff delay in seconds, doubled on each retry."""

    max_image_size_mb: int = 10
    """Largest image download accepted, in megabytes."""

    icon_max_dimension: int = 512
    """Longest side, in pixels, of images stored on icons."""

    icon_jpeg_quality: int = 75
    """JPEG quality used when re-encoding downloaded icon images."""

    # =========================================================================
    # Storage Settings
    # =========================================================================

    folder_store_path: str = "data/folders.json"
    """JSON file holding the persistent folder collection."""

    default_folder_names: list[str] = ["General"]
    """Folders created with is_default=True when the store starts empty."""

    # =========================================================================
    # Job Management Settings
    # =========================================================================

    job_ttl_hours: int = 24
    """Time-to-live for import job records in hours before cleanup."""

    # =========================================================================
    # Logging Settings
    # =========================================================================

    log_level: str = "INFO"
    """Logging level: DEBUG, INFO, WARNING, ERROR, or CRITICAL."""

    debug: bool = False
    """Enable debug mode with additional error details."""

    # =========================================================================
    # Server Settings
    # =========================================================================

    cors_origins: str = "*"
    """Comma-separated list of allowed CORS origins, or * for all."""

    server_host: str = "0.0.0.0"
    """Host address for the server to bind to."""

    server_port: int = 8000
    """Port for the server to listen on."""

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid Python logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(
                f"Invalid log level: {v}. Must be one of: {', '.join(valid_levels)}"
            )
        return upper_v

    @field_validator("max_file_size_mb", "max_image_size_mb")
    @classmethod
    def validate_file_size(cls, v: int) -> int:
        """Validate size limits are positive and reasonable."""
        if not 1 <= v <= 500:
            raise ValueError(f"size limit must be between 1 and 500 MB, got {v}")
        return v

    @field_validator("fetch_timeout_seconds")
    @classmethod
    def validate_fetch_timeout(cls, v: float) -> float:
        """Fetches must always be bounded by a timeout."""
        if v <= 0:
            raise ValueError(f"fetch_timeout_seconds must be positive, got {v}")
        return v

    @field_validator("fetch_max_concurrency")
    @classmethod
    def validate_fetch_concurrency(cls, v: int) -> int:
        if not 1 <= v <= 32:
            raise ValueError(f"fetch_max_concurrency must be between 1 and 32, got {v}")
        return v

    @field_validator("fetch_max_retries")
    @classmethod
    def validate_fetch_retries(cls, v: int) -> int:
        if not 0 <= v <= 10:
            raise ValueError(f"fetch_max_retries must be between 0 and 10, got {v}")
        return v

    @field_validator("fetch_retry_base_delay")
    @classmethod
    def validate_retry_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"fetch_retry_base_delay cannot be negative, got {v}")
        return v

    @field_validator("icon_max_dimension")
    @classmethod
    def validate_icon_dimension(cls, v: int) -> int:
        if not 16 <= v <= 4096:
            raise ValueError(f"icon_max_dimension must be between 16 and 4096, got {v}")
        return v

    @field_validator("icon_jpeg_quality")
    @classmethod
    def validate_jpeg_quality(cls, v: int) -> int:
        if not 1 <= v <= 95:
            raise ValueError(f"icon_jpeg_quality must be between 1 and 95, got {v}")
        return v

    @field_validator("server_port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port is in valid range."""
        if not 1 <= v <= 65535:
            raise ValueError(f"server_port must be between 1 and 65535, got {v}")
        return v

    @field_validator("job_ttl_hours")
    @classmethod
    def validate_job_ttl(cls, v: int) -> int:
        """Validate job TTL is positive."""
        if v < 1:
            raise ValueError(f"job_ttl_hours must be at least 1, got {v}")
        return v

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def max_file_size_bytes(self) -> int:
        """Get max workbook size in bytes."""
        return self.max_file_size_mb * 1024 * 1024

    @property
    def max_image_size_bytes(self) -> int:
        """Get max image download size in bytes."""
        return self.max_image_size_mb * 1024 * 1024

    @property
    def job_ttl_seconds(self) -> int:
        """Get job TTL in seconds."""
        return self.job_ttl_hours * 3600

    @property
    def cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def log_level_int(self) -> int:
        """Get log level as integer for logging module."""
        level: int = getattr(logging, self.log_level)
        return level

    def to_safe_dict(self) -> dict[str, Any]:
        """Convert settings to a dictionary suitable for logging."""
        return {
            "max_file_size_mb": self.max_file_size_mb,
            "fetch_timeout_seconds": self.fetch_timeout_seconds,
            "fetch_max_concurrency": self.fetch_max_concurrency,
            "fetch_max_retries": self.fetch_max_retries,
            "fetch_retry_base_delay": self.fetch_retry_base_delay,
            "max_image_size_mb": self.max_image_size_mb,
            "icon_max_dimension": self.icon_max_dimension,
            "icon_jpeg_quality": self.icon_jpeg_quality,
            "folder_store_path": self.folder_store_path,
            "default_folder_names": list(self.default_folder_names),
            "job_ttl_hours": self.job_ttl_hours,
            "log_level": self.log_level,
            "debug": self.debug,
            "cors_origins": self.cors_origins,
            "server_host": self.server_host,
            "server_port": self.server_port,
        }


def validate_settings_on_startup(s: Settings) -> None:
    """Validate settings on application startup.

    Emits warnings for configurations that are legal but risky and logs a
    configuration summary.

    Args:
        s: Settings instance to validate.
    """
    logger = logging.getLogger(__name__)

    if s.cors_origins == "*" and not s.debug:
        logger.warning(
            "CORS is configured to allow all origins (*). "
            "Consider restricting this in production."
        )

    if s.fetch_timeout_seconds * (s.fetch_max_retries + 1) > 120:
        logger.warning(
            "A single unreachable image host can stall a batch for over two "
            "minutes; consider lowering AAC_FETCH_TIMEOUT_SECONDS or "
            "AAC_FETCH_MAX_RETRIES."
        )

    logger.info(
        f"Configuration loaded: log_level={s.log_level}, debug={s.debug}, "
        f"folder_store_path={s.folder_store_path}, "
        f"fetch_max_concurrency={s.fetch_max_concurrency}"
    )


# Create the global settings instance
settings = Settings()
