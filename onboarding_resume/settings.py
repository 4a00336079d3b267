from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    app_env: str = "dev"
    log_level: str = "INFO"

    # Infra
    database_url: str = "postgresql://app:app@db:5432/app"
    redis_url: str = "redis://redis:6379/0"
    smtp_base_url: str = "http://smtp-mock:8025"
    smtp_timeout_seconds: float = 10.0

    # Secret hashing
    hash_pepper: str = "change-me"
    hash_iterations: int = 60_000

    # Verification codes
    code_length: int = 6
    code_ttl_seconds: int = 900
    code_max_attempts: int = 5
    resend_throttle_seconds: int = 60

    # Sessions
    session_ttl_seconds: int = 1800
    conflict_retries: int = 3

    # Reaper
    reaper_interval_seconds: int = 3600
    reaper_retention_days: int = 90

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
