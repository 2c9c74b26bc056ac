"""Application-wide configuration management using Pydantic settings."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MIB = 1024 * 1024


class Settings(BaseSettings):
    """Configuration for the blueprint service.

    Loaded once at startup and passed into each component; request handling
    code never reads the environment directly.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    environment: Literal["development", "production"] = "development"
    service_name: str = "blueprint-service"
    log_level: str = "INFO"
    port: int = 3000

    # Object store
    storage_backend: Literal["minio", "local"] = "minio"
    minio_endpoint: str = "http://localhost:9000"
    minio_region: str = "us-east-1"
    minio_access_key: Optional[str] = None
    minio_secret_key: Optional[str] = None
    minio_bucket: Optional[str] = None
    storage_public_base_url: Optional[str] = None
    storage_local_root: str = "storage"
    storage_ensure_bucket: bool = False
    storage_write_attempts: int = 3
    storage_retry_wait_seconds: float = 0.5

    # Downstream analysis service
    analysis_base_url: str
    analysis_timeout_seconds: float = 25.0
    analysis_max_connections: int = 100

    # Fixed processing defaults sent with every request
    processing_mode: str = "blueprint"
    processing_input_type: str = "image_url"
    processing_progressive: bool = False
    processing_want: str = "geometry"

    # Upload limits
    max_upload_bytes: int = 25 * MIB
    max_field_bytes: int = 1 * MIB

    # Built frontend served in production
    static_dir: str = "dist"

    @model_validator(mode="after")
    def _check_storage(self) -> "Settings":
        if self.storage_backend == "minio":
            missing = [
                name
                for name in ("minio_access_key", "minio_secret_key", "minio_bucket")
                if not getattr(self, name)
            ]
            if missing:
                raise ValueError(f"MinIO storage requires: {', '.join(missing)}")
        if self.storage_write_attempts < 1:
            raise ValueError("storage_write_attempts must be at least 1")
        return self

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def public_base_url(self) -> str:
        """Base URL under which stored objects are publicly reachable."""

        if self.storage_public_base_url:
            return self.storage_public_base_url.rstrip("/")
        if self.storage_backend == "minio":
            return self.minio_endpoint.rstrip("/")
        return f"http://localhost:{self.port}/storage"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load and cache configuration for the current process."""

    return Settings()  # type: ignore[call-arg]


__all__ = ["MIB", "Settings", "get_settings"]
