from datetime import time
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env from the project root so it loads regardless of cwd
_BACKEND_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _BACKEND_ROOT / ".env"

HOUR_FORMAT = "%H:%M:%S"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(str(_ENV_FILE), ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./appointments.db"
    auto_create_tables: bool = True

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Bookable slot start times within a day, in order (VALID_HOURS='["09:00:00", ...]')
    valid_hours: list[str] = [
        "09:00:00",
        "10:00:00",
        "11:00:00",
        "12:00:00",
        "13:00:00",
        "14:00:00",
        "15:00:00",
        "16:00:00",
        "17:00:00",
    ]

    # Env
    env: str = "development"

    @field_validator("valid_hours")
    @classmethod
    def normalize_valid_hours(cls, value: list[str]) -> list[str]:
        """Zero-pad every hour to HH:MM:SS so string comparisons stay ordered."""
        hours = [time.fromisoformat(h.strip()).strftime(HOUR_FORMAT) for h in value]
        if not hours:
            raise ValueError("valid_hours must contain at least one hour")
        if len(set(hours)) != len(hours):
            raise ValueError("valid_hours must not contain duplicates")
        return hours

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.env == "production"


settings = Settings()
