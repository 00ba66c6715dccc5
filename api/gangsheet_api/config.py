"""Application configuration."""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    postgres_host: str = "postgres"
    postgres_port: int = 5432
    postgres_user: str = "gangsheet"
    postgres_password: str = "changeme"
    postgres_db: str = "gangsheet_db"

    # Full URL wins over the postgres_* parts (e.g. sqlite for local runs)
    database_url_override: Optional[str] = None

    # Redis
    redis_url: str = "redis://redis:6379/0"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_reload: bool = True
    api_workers: int = 1

    # Celery
    celery_broker_url: str = "redis://redis:6379/0"
    celery_result_backend: str = "redis://redis:6379/0"
    generate_gangsheet_task: str = "gangsheet_worker.tasks.generate_gangsheet.generate_gangsheet"
    worker_health_check_task: str = "gangsheet_worker.tasks.health_check"
    worker_health_check_timeout: float = 3.0

    # Storage
    storage_encryption_key: str = "changeme-32-bytes-base64-encoded-key"

    # Default sheet settings for tenants without their own
    default_roll_width_in: float = 22.0
    default_roll_height_in: float = 60.0
    default_dpi: int = 300
    default_gap_in: float = 0.3
    default_border: bool = True
    default_border_size_in: float = 0.1
    default_border_color: str = "red"
    default_auto_arrange: bool = True
    default_max_designs_per_sheet: Optional[int] = None
    default_background_color: Optional[str] = None

    # Environment
    environment: str = "development"

    @property
    def database_url(self) -> str:
        """Build database URL."""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    def default_sheet_settings(self) -> dict:
        """Built-in sheet settings as a plain dict."""
        return {
            "roll_width_in": self.default_roll_width_in,
            "roll_height_in": self.default_roll_height_in,
            "dpi": self.default_dpi,
            "gap_in": self.default_gap_in,
            "border": self.default_border,
            "border_size_in": self.default_border_size_in,
            "border_color": self.default_border_color,
            "auto_arrange": self.default_auto_arrange,
            "max_designs_per_sheet": self.default_max_designs_per_sheet,
            "background_color": self.default_background_color,
        }


settings = Settings()
