from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    source_url: str = "https://ip-ranges.amazonaws.com/ip-ranges.json"
    refresh_interval_minutes: int = 30
    fetch_timeout_seconds: float = 90.0
    listen_host: str = "0.0.0.0"
    listen_port: int = 8080
    log_level: Literal["debug", "info", "warning", "error", "critical"] = "info"


settings = Settings()
