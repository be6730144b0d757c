from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "StageBook API"
    app_env: str = "development"
    debug: bool = False
    api_v1_prefix: str = "/api/v1"
    log_level: str = "INFO"

    # CORS: comma-separated origins, or "*" for allow all
    cors_origins: str = "*"

    # Key-value store
    # "memory" keeps data for the process lifetime only, "file" writes JSON
    # files under data_dir, "redis" talks to a hosted Redis (Upstash, etc.)
    store_backend: Literal["memory", "file", "redis"] = "memory"
    redis_url: str = "redis://localhost:6379"
    data_dir: Path = Path("data")
    artists_key: str = "artists"

    # Reviewer recorded on approve/reject when the request does not name one
    default_reviewer: str = "admin@example.com"

    # Supabase Storage (artist profile images)
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    supabase_service_role_key: Optional[str] = None  # Bypasses RLS - use for server-side uploads
    supabase_bucket_artists: str = "artists"

    # File uploads
    max_upload_size_mb: int = 5
    allowed_image_types: list[str] = ["image/jpeg", "image/png", "image/webp", "image/gif"]

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    @property
    def is_development(self) -> bool:
        return self.app_env.lower() in {"dev", "development"}


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
