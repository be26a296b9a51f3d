# backend/marketplace/config.py

from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]  # repository root


class Settings(BaseSettings):
    database_url: str
    redis_url: str

    log_level: str = "INFO"
    redis_socket_timeout: float = 2.0
    sqlite_busy_timeout: float = 15.0

    # Reservation window granted to a pending order (seconds)
    reservation_ttl_seconds: int = 900

    # Stale-reservation sweeper
    sweeper_enabled: bool = True
    sweep_interval_seconds: int = 60

    events_enabled: bool = True

    # Hosts allowed to call /internal/* (payment webhook bridge, cron)
    internal_allowed_hosts: list[str] = ["127.0.0.1", "localhost", "::1"]

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        extra="ignore",
    )

    @property
    def resolved_database_url(self) -> str:
        url = self.database_url
        if url.startswith("sqlite:///./"):
            # Relative sqlite path is resolved against the repository root
            relative_path = url.replace("sqlite:///./", "")
            absolute_path = BASE_DIR / relative_path
            return f"sqlite:///{absolute_path}"
        return url

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


settings = Settings()
