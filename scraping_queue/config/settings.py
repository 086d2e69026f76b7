from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    sources: list[str] = Field(default_factory=list)
    queue_backend: str = "postgres"

    db_host: str = "localhost"
    db_port: int = 5432
    db_database: str = "scraping"
    db_username: str = "scraping"
    db_password: str = "secret"
    db_pool_max_size: int = 10
    db_connect_timeout_seconds: float = 5.0

    queue_concurrency: int = Field(default=1, ge=1)
    max_job_attempts: int = Field(default=3, ge=1)
    backoff_base_delay_seconds: float = Field(default=5.0, ge=0)
    job_poll_interval_seconds: float = Field(default=5.0, gt=0)
    stall_interval_seconds: float = Field(default=30.0, gt=0)
    completed_retention: int = Field(default=50, ge=0)
    failed_retention: int = Field(default=100, ge=0)
    requeue_orphaned_jobs: bool = True
    shutdown_timeout_seconds: float = 30.0

    orchestrator_provider: str = "example"
    orchestrator_base_url: str = ""
    orchestrator_api_key: str = ""
    orchestrator_timeout_seconds: int = 300

    notifier_provider: str = "log"
    notifier_base_url: str = ""
    notifier_api_key: str = ""
    notifier_timeout_seconds: int = 5
    progress_event_type: str = "scraping_progress"
