"""Worker configuration."""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Worker settings.

    Database access goes through ``gangsheet_api.database``, which reads the
    same environment.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Redis/Celery
    redis_url: str = "redis://redis:6379/0"
    celery_broker_url: str = "redis://redis:6379/0"
    celery_result_backend: str = "redis://redis:6379/0"
    worker_concurrency: int = 2

    # Order/design service
    design_service_url: str = "http://design-service:8080"
    design_service_token: Optional[str] = None
    design_service_timeout: float = 30.0

    # Generation
    image_fetch_concurrency: int = 6
    render_pdf_proof: bool = True

    # Environment
    environment: str = "development"
    log_level: str = "INFO"


settings = Settings()
