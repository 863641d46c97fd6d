from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # BWAPs probability aggregator
    bwaps_base_url: str = "https://chancedb.com/api"
    bwaps_api_key: str | None = None
    http_timeout_seconds: float = Field(default=30.0, gt=0)

    # Watch polling
    watch_poll_interval_ms: int = Field(default=120_000, gt=0)
    snapshot_timeout_seconds: float = Field(default=20.0, gt=0)

    # Alert queue: oldest pending alert is evicted beyond this size
    alert_queue_max_size: int = Field(default=500, gt=0)
    alert_drain_limit: int = Field(default=5, gt=0)

    # Logging
    log_level: str = "INFO"
