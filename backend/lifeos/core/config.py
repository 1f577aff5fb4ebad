"""Application configuration managed via environment variables."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "LifeOS Planning Engine"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "postgresql+psycopg2://lifeos@localhost:5432/lifeos"
    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "lifeos-planning"
    default_day_start: str = "07:00"
    default_day_end: str = "22:00"
    allocator_strategy: str = "greedy"
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    augmentation_timeout_seconds: float = 20.0
    scheduler_enabled: bool = False
    scheduler_timezone: str = "UTC"
    planning_job_hour: int = 5
    planning_job_minute: int = 0
    jobs_run_on_startup: bool = False


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
