"""Application configuration."""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings."""

    # App
    APP_NAME: str = "Trade_Ops_Factory_Link"
    ENV: str = "development"
    DEBUG: bool = True
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:5173"
    API_BASE_URL: str = "http://localhost:8000"
    # Prefix for links stored on team notifications (dashboard routes live in the frontend).
    FRONTEND_BASE_URL: str = ""

    # Database
    DATABASE_URL: str
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 10

    # Celery
    CELERY_BROKER_URL: str = "redis://localhost:6379/1"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/2"

    # Internal callers (business layer -> this service). Sent as X-Internal-Api-Key.
    INTERNAL_API_KEY: str | None = None

    # WeCom group-bot webhook delivery
    WECOM_MAX_ATTEMPTS: int = 3
    WECOM_RETRY_BASE_DELAY_SECONDS: float = 1.0  # linear: 1x, 2x, ...
    WECOM_REQUEST_TIMEOUT_SECONDS: float = 10.0

    # Factory reminders (Celery beat)
    FACTORY_REMINDER_QUIET_HOURS: int = 24
    FACTORY_REMINDER_SCHEDULE_SECONDS: float = 24 * 60 * 60
    FACTORY_MESSAGE_HISTORY_LIMIT: int = 50

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS origins as list."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
