"""
Runtime configuration, read from the environment (and backend .env).
"""
import os
from dataclasses import dataclass, field
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

load_dotenv()


def _csv(value: str) -> list[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


@dataclass
class Settings:
    database_url: str = field(default_factory=lambda: os.getenv("DATABASE_URL", "sqlite:///time_app.db"))
    app_env: str = field(default_factory=lambda: os.getenv("APP_ENV", "development"))
    cors_origins: list[str] = field(
        default_factory=lambda: _csv(os.getenv("CORS_ORIGINS", "http://localhost:3000"))
    )
    timezone: str = field(default_factory=lambda: os.getenv("TIMEZONE", "UTC"))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_file: str | None = field(default_factory=lambda: os.getenv("LOG_FILE") or None)
    page_size: int = field(default_factory=lambda: int(os.getenv("PAGE_SIZE", "20")))
    max_timer_age_hours: int = field(default_factory=lambda: int(os.getenv("MAX_TIMER_AGE_HOURS", "24")))
    export_history_limit: int = field(default_factory=lambda: int(os.getenv("EXPORT_HISTORY_LIMIT", "100")))

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


settings = Settings()
