import os
from dataclasses import dataclass
from functools import lru_cache

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./matching.db"


def _env_int(name: str, default: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass
class Settings:
    """Application settings loaded from environment variables with safe defaults."""

    app_name: str = "Matching Lifecycle"
    env: str = "dev"
    database_url: str = DEFAULT_DATABASE_URL
    log_level: str = "INFO"
    # Points per hour. The base rate prices group offers and equals the rank-1 rate.
    min_hourly_rate: int = 3000
    base_hourly_rate: int = 3000
    fanout_retry_attempts: int = 3

    @classmethod
    def from_env(cls) -> "Settings":
        """Create Settings from environment variables."""
        return cls(
            app_name=os.getenv("APP_NAME", cls.app_name),
            env=os.getenv("ENV", cls.env),
            database_url=os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL,
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
            min_hourly_rate=_env_int("MIN_HOURLY_RATE", cls.min_hourly_rate),
            base_hourly_rate=_env_int("BASE_HOURLY_RATE", cls.base_hourly_rate),
            fanout_retry_attempts=max(1, _env_int("FANOUT_RETRY_ATTEMPTS", cls.fanout_retry_attempts)),
        )


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings.from_env()
