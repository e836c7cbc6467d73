from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_env: str = Field(default="dev", alias="APP_ENV")
    app_host: str = Field(default="0.0.0.0", alias="APP_HOST")
    app_port: int = Field(default=8000, alias="APP_PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    database_url: str = Field(alias="DATABASE_URL")
    redis_url: str = Field(default="redis://localhost:6379/0", alias="REDIS_URL")

    celery_broker_url: str = Field(default="redis://localhost:6379/1", alias="CELERY_BROKER_URL")
    celery_result_backend: str = Field(
        default="redis://localhost:6379/2",
        alias="CELERY_RESULT_BACKEND",
    )

    daily_game_default_quota: int = Field(default=10, alias="DAILY_GAME_DEFAULT_QUOTA")
    game_slot_ttl_seconds: int = Field(default=86_400, alias="GAME_SLOT_TTL_SECONDS")
    question_novelty_window_days: int = Field(default=14, alias="QUESTION_NOVELTY_WINDOW_DAYS")
    invite_code_ttl_days: int = Field(default=7, alias="INVITE_CODE_TTL_DAYS")

    presence_heartbeat_seconds: float = Field(default=15.0, alias="PRESENCE_HEARTBEAT_SECONDS")
    presence_timeout_seconds: float = Field(default=45.0, alias="PRESENCE_TIMEOUT_SECONDS")

    game_slot_expiry_batch_size: int = Field(default=200, alias="GAME_SLOT_EXPIRY_BATCH_SIZE")
    game_slot_expiry_scan_interval_seconds: int = Field(
        default=300,
        alias="GAME_SLOT_EXPIRY_SCAN_INTERVAL_SECONDS",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
