from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="allow")

    environment: Literal["development", "staging", "production"] = "development"
    database_url: str = "sqlite+aiosqlite:///./spacenexus_alerts.db"
    service_name: str = "spacenexus-alerts"

    # Alert job scheduler
    alert_job_scheduler_enabled: bool = False
    alert_job_schedule_path: str = "config/schedules.toml"

    # Watchlist alerts
    watchlist_alert_lookback_hours: int = 24

    @field_validator("watchlist_alert_lookback_hours")
    @classmethod
    def _validate_lookback(cls, value: int) -> int:
        if value < 1:
            raise ValueError("watchlist_alert_lookback_hours must be at least 1")
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[arg-type]


settings = get_settings()
