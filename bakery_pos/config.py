from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables (or a .env file).

    Attributes:
        DATABASE_URL: SQLAlchemy connection URL
        REDIS_URL: Redis URL used for the product cache
        CACHE_TTL: Default cache TTL in seconds
        CELERY_BROKER_URL: Broker URL for background tasks
        CELERY_RESULT_BACKEND: Result backend URL for background tasks
        LOG_LEVEL: Root logging level
        TOP_PRODUCTS_LIMIT: Number of products ranked on the dashboard
        LOW_STOCK_THRESHOLD: Stock level at or below which a product is flagged
        REPORT_TIMEZONE: IANA zone used for day boundaries and hourly buckets;
            unset means the server's local zone
    """
    APP_NAME: str = "Bakery POS"
    DATABASE_URL: str = "sqlite:///./bakery_pos.db"
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_TTL: int = 300
    CELERY_BROKER_URL: str = "redis://localhost:6379/1"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/2"
    LOG_LEVEL: str = "INFO"
    TOP_PRODUCTS_LIMIT: int = 5
    LOW_STOCK_THRESHOLD: int = 5
    REPORT_TIMEZONE: Optional[str] = None

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache()
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
