"""API configuration from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "postgresql+asyncpg://keidispatch:keidispatch@db:5432/keidispatch"
    REDIS_URL: str = "redis://redis:6379/0"
    GOOGLE_MAPS_API_KEY: str | None = None

    # Distance lookups
    DISTANCE_CACHE_TTL: int = 2 * 3600      # 2 hours
    MAPS_TIMEOUT_SEC: float = 10.0

    # Quote pipeline
    QUOTE_DEBOUNCE_MS: int = 600

    # Fail hard on reconciliation bugs (dev/test); log and recompute otherwise
    PRICING_STRICT_INVARIANTS: bool = False

    TIMEZONE: str = "Asia/Tokyo"
    LOG_LEVEL: str = "INFO"
    SEED_DEFAULT_VEHICLES: bool = True

    class Config:
        env_file = ".env"
        extra = "allow"


settings = Settings()
