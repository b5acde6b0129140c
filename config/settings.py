"""Configuration management using pydantic-settings."""
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Upstream FPL API
    fpl_api_base_url: str = "https://fantasy.premierleague.com/api"

    # Secondary source: static season dumps
    backup_api_base_url: str = "https://fpl-static-data.vercel.app"
    backup_season: str = "2025-2026"
    secondary_enabled: bool = True

    # Last-resort local snapshots (bootstrap-static.json, fixtures.json, live-event.json)
    snapshot_directory: Path = Path("./backup-data")
    snapshot_enabled: bool = True

    # HTTP client
    request_timeout_seconds: float = 30.0
    user_agent: str = "Fantasy-PL-Proxy/1.0"

    # Cache settings
    # None derives the waiter timeout from the longest chain walk
    coalesce_timeout_seconds: Optional[float] = None
    cache_max_entries: Optional[int] = 1000
    bootstrap_ttl_seconds: int = 600
    picks_ttl_seconds: int = 600
    live_event_ttl_seconds: int = 60

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
