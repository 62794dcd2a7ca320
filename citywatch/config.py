"""Application configuration using Pydantic settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_url: str = "postgresql+asyncpg://localhost:5432/citywatch"

    # Detection service
    detection_api_url: str = ""
    detection_api_key: str = ""
    detection_client_id: str = ""
    detection_timeout_seconds: float = 30.0
    detection_model_version: str = "yolo-lima-v1.0"

    # Detection result polling
    detection_settle_seconds: float = 2.0
    detection_max_attempts: int = 5
    detection_backoff_initial_seconds: float = 1.0
    detection_backoff_max_seconds: float = 8.0
    detection_deadline_seconds: float = 30.0

    # Object storage (Supabase)
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    storage_base_url: str | None = None  # Overrides the Supabase public URL
    photo_bucket: str = "yolo_model"
    photo_max_bytes: int = 5 * 1024 * 1024

    # Heatmap
    heatmap_grid_size_degrees: float = 0.0045  # ~500m at the equator
    heatmap_point_radius_m: int = 500

    # API settings
    api_v1_prefix: str = "/api/v1"
    cors_origins: list[str] = ["*"]  # Restrict in production
    rate_limit_per_minute: int = 60

    # Environment
    debug: bool = False

    def missing_required(self) -> list[str]:
        """Names of required settings that are empty."""
        required = [
            "database_url",
            "detection_api_url",
            "detection_api_key",
            "detection_client_id",
            "supabase_url",
            "supabase_service_role_key",
        ]
        return [name for name in required if not getattr(self, name)]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
