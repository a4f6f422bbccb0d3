# backend/booking_api/config.py

from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]  # repo root


class Settings(BaseSettings):
    database_url: str = "sqlite:///./data/booking.db"
    redis_url: str | None = None

    # Opening hours in templates are wall-clock times of this zone
    timezone: str = "Europe/Luxembourg"

    horizon_days: int = 90
    cancellation_cutoff_minutes: int = 0

    booking_max_attempts: int = 3
    booking_retry_backoff_ms: int = 50

    slots_cache_ttl_seconds: int = 86400

    completion_checker_enabled: bool = True
    completion_check_interval: int = 60

    sqlite_busy_timeout_seconds: int = 30
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        extra="ignore",
    )

    @property
    def resolved_database_url(self) -> str:
        url = self.database_url
        if url.startswith("sqlite:///./"):
            relative_path = url.replace("sqlite:///./", "")
            absolute_path = BASE_DIR / relative_path
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            return f"sqlite:///{absolute_path}"
        return url


settings = Settings()
